import json
import logging

from django.contrib import messages
from django.contrib.auth.decorators import login_required
from django.contrib.auth.mixins import LoginRequiredMixin, UserPassesTestMixin
from django.core.exceptions import ValidationError
from django.http import Http404, JsonResponse
from django.shortcuts import get_object_or_404, redirect
from django.urls import reverse, reverse_lazy
from django.utils.http import url_has_allowed_host_and_scheme
from django.views.decorators.http import require_http_methods, require_POST
from django.views.generic import CreateView, DeleteView, DetailView, ListView, UpdateView

from team.permissions import TeamAccessMixin, team_member_required
from .forms import (
    ActionItemForm, AgendaItemForm, AgendaTemplateForm, AgendaTemplateItemForm,
    ApplyTemplateForm, CommentForm, MeetingSeriesForm, ParkingLotForm, PriorityForm, TopicForm,
)
from .models import (
    AgendaTemplate, AgendaTemplateItem, Comment, CompletionStatus, ITEM_MODELS, ItemKind,
    MeetingInstance, MeetingSeries,
)
from .periods import UnknownFrequencyError
from .services import (
    action_items_for_instance, agenda_items_for_instance, apply_template, item_scope,
    materialize_next_instance, next_instance, next_order_index, previous_instance,
    reorder_items, resolve_current_instance,
)

logger = logging.getLogger(__name__)

ITEM_FORMS = {
    ItemKind.AGENDA_ITEM: AgendaItemForm,
    ItemKind.PRIORITY: PriorityForm,
    ItemKind.TOPIC: TopicForm,
    ItemKind.ACTION_ITEM: ActionItemForm,
}


def parse_item_kind(kind):
    try:
        return ItemKind(kind)
    except ValueError:
        raise Http404("Unknown item type")


def get_series(team, series_id):
    return get_object_or_404(MeetingSeries, pk=series_id, team=team)


def get_instance(series, instance_id):
    try:
        instance_id = int(instance_id)
    except (TypeError, ValueError):
        raise Http404("Meeting not found")
    return get_object_or_404(MeetingInstance, pk=instance_id, series=series)


def get_series_item(series, kind, item_id):
    """Item of ``kind`` belonging to ``series`` (directly or through one of its instances)"""
    model = ITEM_MODELS[kind]
    if kind in (ItemKind.AGENDA_ITEM, ItemKind.ACTION_ITEM):
        return get_object_or_404(model, pk=item_id, series=series)
    return get_object_or_404(model, pk=item_id, instance__series=series)


def get_instance_item(instance, kind, item_id):
    model = ITEM_MODELS[kind]
    if kind in (ItemKind.AGENDA_ITEM, ItemKind.ACTION_ITEM):
        return get_object_or_404(model, pk=item_id, series_id=instance.series_id)
    return get_object_or_404(model, pk=item_id, instance=instance)


def owner_fields(kind, instance):
    """Foreign keys a new item of ``kind`` needs and the list it is appended to"""
    model = ITEM_MODELS[kind]
    if kind in (ItemKind.AGENDA_ITEM, ItemKind.ACTION_ITEM):
        return {'series': instance.series}, model.objects.filter(series_id=instance.series_id)
    return {'instance': instance}, model.objects.filter(instance=instance)


# Meeting series

class SeriesCreateView(TeamAccessMixin, CreateView):
    model = MeetingSeries
    form_class = MeetingSeriesForm
    template_name = 'meeting/series_form.html'

    def form_valid(self, form):
        series = form.save(commit=False)
        series.team = self.team
        series.created_by = self.request.user
        series.save()
        self.object = series
        logger.info("Meeting series %s created in team %s by user %s", series.pk, self.team.pk, self.request.user.pk)
        messages.success(self.request, f"Meeting '{series.name}' created successfully.")
        return redirect(series.get_absolute_url())


@login_required
@team_member_required()
def series_current(request, series_id, team):
    """Open the instance of the current period, creating it on first visit"""
    series = get_series(team, series_id)
    instance, created = resolve_current_instance(series)
    return redirect(instance.get_absolute_url())


@login_required
@require_POST
@team_member_required()
def create_next_instance(request, series_id, team):
    """Create the meeting that follows the latest one"""
    series = get_series(team, series_id)
    previous = None
    if request.POST.get('instance_id'):
        previous = get_instance(series, request.POST['instance_id'])
    try:
        instance, created = materialize_next_instance(series, previous)
    except (ValidationError, UnknownFrequencyError) as e:
        logger.error("Could not create next meeting for series %s: %s", series.pk, e)
        messages.error(request, "Could not create the next meeting.")
        return redirect(series.get_absolute_url())

    if created:
        messages.success(request, f"Created {instance.label}.")
    else:
        messages.info(request, f"{instance.label} already exists.")
    return redirect(instance.get_absolute_url())


class InstanceDetailView(TeamAccessMixin, DetailView):
    """One meeting: agenda, priorities, topics, action items and navigation"""
    model = MeetingInstance
    template_name = 'meeting/instance_detail.html'
    context_object_name = 'instance'

    def get_object(self, queryset=None):
        self.series = get_series(self.team, self.kwargs['series_id'])
        return get_instance(self.series, self.kwargs['pk'])

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        instance = self.object
        team = self.team
        previous = previous_instance(instance)

        context['series'] = self.series
        context['agenda_items'] = agenda_items_for_instance(instance)
        context['priorities'] = item_scope(ItemKind.PRIORITY, instance)
        context['topics'] = item_scope(ItemKind.TOPIC, instance)
        context['action_items'] = action_items_for_instance(instance)
        context['previous_instance'] = previous
        context['previous_priorities'] = item_scope(ItemKind.PRIORITY, previous) if previous else []
        context['next_instance'] = next_instance(instance)
        context['instances'] = self.series.instances.order_by('-start_date')
        context['agenda_form'] = AgendaItemForm(team=team)
        context['priority_form'] = PriorityForm(team=team)
        context['topic_form'] = TopicForm(team=team)
        context['action_item_form'] = ActionItemForm(team=team)
        context['parking_lot_form'] = ParkingLotForm(instance=self.series)
        context['comment_form'] = CommentForm()
        context['item_kinds'] = ItemKind
        return context


class SeriesSettingsView(TeamAccessMixin, DetailView):
    """Rename the series, change its cadence or apply an agenda template"""
    model = MeetingSeries
    template_name = 'meeting/series_settings.html'
    context_object_name = 'series'

    def get_object(self, queryset=None):
        return get_series(self.team, self.kwargs['series_id'])

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        context.setdefault('series_form', MeetingSeriesForm(instance=self.object))
        context.setdefault('template_form', ApplyTemplateForm(user=self.request.user))
        return context

    def post(self, request, *args, **kwargs):
        self.object = self.get_object()
        if 'update' in request.POST:
            return self.update_series(request)
        if 'apply_template' in request.POST:
            return self.apply_agenda_template(request)
        messages.error(request, "Invalid request.")
        return redirect('meeting:series-settings', team_id=self.team.pk, series_id=self.object.pk)

    def update_series(self, request):
        old_frequency = self.object.frequency
        series_form = MeetingSeriesForm(request.POST, instance=self.object)
        if not series_form.is_valid():
            return self.render_to_response(self.get_context_data(series_form=series_form))
        series = series_form.save()
        if series.frequency != old_frequency:
            logger.info("Series %s frequency changed from %s to %s", series.pk, old_frequency, series.frequency)
            messages.info(request, "The new frequency applies to meetings created from now on.")
        messages.success(request, "Meeting settings saved.")
        return redirect('meeting:series-settings', team_id=self.team.pk, series_id=series.pk)

    def apply_agenda_template(self, request):
        template_form = ApplyTemplateForm(request.POST, user=request.user)
        if not template_form.is_valid():
            return self.render_to_response(self.get_context_data(template_form=template_form))
        template = template_form.cleaned_data['template']
        created = apply_template(self.object, template, request.user)
        messages.success(request, f"Added {len(created)} agenda item{'s' if len(created) != 1 else ''} from '{template.name}'.")
        return redirect('meeting:series-settings', team_id=self.team.pk, series_id=self.object.pk)


class SeriesDeleteView(TeamAccessMixin, DeleteView):
    model = MeetingSeries
    template_name = 'meeting/series_confirm_delete.html'
    context_object_name = 'series'
    team_admin_required = True

    def get_object(self, queryset=None):
        return get_series(self.team, self.kwargs['series_id'])

    def get_success_url(self):
        return reverse('team:team-detail', kwargs={'team_id': self.team.pk})

    def form_valid(self, form):
        messages.success(self.request, f"Meeting '{self.object.name}' deleted successfully.")
        logger.info("Meeting series %s deleted by user %s", self.object.pk, self.request.user.pk)
        return super().form_valid(form)


@login_required
@require_POST
@team_member_required()
def update_parking_lot(request, series_id, team):
    series = get_series(team, series_id)
    form = ParkingLotForm(request.POST, instance=series)
    if form.is_valid():
        form.save()
        messages.success(request, "Parking lot saved.")
    else:
        messages.error(request, "Parking lot could not be saved.")
    next_url = request.POST.get('next')
    if not next_url or not url_has_allowed_host_and_scheme(next_url, allowed_hosts={request.get_host()}):
        next_url = series.get_absolute_url()
    return redirect(next_url)


# Meeting items

@login_required
@require_POST
@team_member_required()
def item_create(request, series_id, instance_id, kind, team):
    kind = parse_item_kind(kind)
    series = get_series(team, series_id)
    instance = get_instance(series, instance_id)

    form = ITEM_FORMS[kind](request.POST, team=team)
    if not form.is_valid():
        for errors in form.errors.values():
            for error in errors:
                messages.error(request, error)
        return redirect(instance.get_absolute_url())

    owner, scope = owner_fields(kind, instance)
    item = form.save(commit=False)
    for field, value in owner.items():
        setattr(item, field, value)
    item.created_by = request.user
    item.order_index = next_order_index(scope)
    item.save()
    messages.success(request, f"{kind.label} '{item.title}' added.")
    return redirect(instance.get_absolute_url())


class ItemUpdateView(TeamAccessMixin, UpdateView):
    template_name = 'meeting/item_form.html'
    context_object_name = 'item'

    def dispatch(self, request, *args, **kwargs):
        self.kind = parse_item_kind(kwargs['kind'])
        return super().dispatch(request, *args, **kwargs)

    def get_object(self, queryset=None):
        self.series = get_series(self.team, self.kwargs['series_id'])
        self.instance = get_instance(self.series, self.kwargs['instance_id'])
        return get_instance_item(self.instance, self.kind, self.kwargs['pk'])

    def get_form_class(self):
        return ITEM_FORMS[self.kind]

    def get_form_kwargs(self):
        kwargs = super().get_form_kwargs()
        kwargs['team'] = self.team
        return kwargs

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        context['series'] = self.series
        context['instance'] = self.instance
        context['kind'] = self.kind
        return context

    def get_success_url(self):
        return self.instance.get_absolute_url()

    def form_valid(self, form):
        messages.success(self.request, f"{self.kind.label} '{form.instance.title}' updated.")
        return super().form_valid(form)


@login_required
@require_POST
@team_member_required()
def item_delete(request, series_id, instance_id, kind, pk, team):
    kind = parse_item_kind(kind)
    series = get_series(team, series_id)
    instance = get_instance(series, instance_id)
    item = get_instance_item(instance, kind, pk)
    title = item.title
    Comment.objects.for_item(item).delete()
    item.delete()
    messages.success(request, f"{kind.label} '{title}' deleted.")
    return redirect(instance.get_absolute_url())


@login_required
@require_POST
@team_member_required()
def item_toggle(request, series_id, instance_id, kind, pk, team):
    """Flip an item between completed and not completed"""
    kind = parse_item_kind(kind)
    series = get_series(team, series_id)
    instance = get_instance(series, instance_id)
    item = get_instance_item(instance, kind, pk)
    if item.is_completed:
        item.completion_status = CompletionStatus.NOT_COMPLETED
    else:
        item.completion_status = CompletionStatus.COMPLETED
    item.save()
    return redirect(instance.get_absolute_url())


@login_required
@require_http_methods(["POST"])
@team_member_required(json=True)
def item_reorder(request, series_id, instance_id, kind, team):
    """AJAX view to store the order of one list on the meeting page"""
    try:
        kind = ItemKind(kind)
    except ValueError:
        return JsonResponse({'error': 'Unknown item type'}, status=400)
    series = get_series(team, series_id)
    instance = get_instance(series, instance_id)

    try:
        data = json.loads(request.body)
        ordered_ids = data.get('order', [])
        if not isinstance(ordered_ids, list):
            return JsonResponse({'error': 'order must be a list of item ids'}, status=400)
        changed = reorder_items(item_scope(kind, instance), ordered_ids)
    except (json.JSONDecodeError, AttributeError):
        return JsonResponse({'error': 'Invalid JSON body'}, status=400)
    except ValidationError as e:
        return JsonResponse({'error': ' '.join(e.messages)}, status=400)

    return JsonResponse({'success': True, 'changed': changed})


# Comments

def serialize_comment(comment, user):
    return {
        'id': comment.pk,
        'content': comment.content,
        'author': comment.created_by.display_name,
        'created_at': comment.created_at.isoformat(),
        'can_delete': comment.created_by_id == user.pk,
    }


@login_required
@require_http_methods(["GET", "POST"])
@team_member_required(json=True)
def item_comments(request, series_id, kind, item_id, team):
    """List (GET) or add (POST) comments of one meeting item"""
    try:
        kind = ItemKind(kind)
    except ValueError:
        return JsonResponse({'error': 'Unknown item type'}, status=400)
    series = get_series(team, series_id)
    item = get_series_item(series, kind, item_id)

    if request.method == 'POST':
        if request.content_type == 'application/json':
            try:
                payload = json.loads(request.body)
            except json.JSONDecodeError:
                return JsonResponse({'error': 'Invalid JSON body'}, status=400)
            if not isinstance(payload, dict):
                return JsonResponse({'error': 'Expected a JSON object'}, status=400)
        else:
            payload = request.POST
        form = CommentForm(payload)
        if not form.is_valid():
            return JsonResponse({'error': 'Comment cannot be empty.'}, status=400)
        comment = form.save(commit=False)
        comment.item_type = kind
        comment.item_id = item.pk
        comment.created_by = request.user
        comment.save()
        return JsonResponse({'success': True, 'comment': serialize_comment(comment, request.user)}, status=201)

    comments = Comment.objects.for_item(item).select_related('created_by')
    return JsonResponse({'comments': [serialize_comment(comment, request.user) for comment in comments]})


@login_required
@require_http_methods(["POST"])
@team_member_required(json=True)
def comment_delete(request, series_id, pk, team):
    series = get_series(team, series_id)
    comment = get_object_or_404(Comment, pk=pk)
    item = comment.get_item()
    if item is None:
        raise Http404("Comment not found")
    get_series_item(series, ItemKind(comment.item_type), item.pk)
    if comment.created_by_id != request.user.pk:
        return JsonResponse({'error': 'Only the author can delete a comment'}, status=403)
    comment.delete()
    return JsonResponse({'success': True})


# Agenda templates

class AgendaTemplateAccessMixin(LoginRequiredMixin, UserPassesTestMixin):
    """Own templates are editable; system templates are read-only except for superusers"""

    def get_queryset(self):
        return AgendaTemplate.objects.available_to(self.request.user)

    def test_func(self):
        template = self.get_object()
        return self.request.user.is_superuser or (not template.is_system and template.created_by_id == self.request.user.pk)


class AgendaTemplateListView(LoginRequiredMixin, ListView):
    model = AgendaTemplate
    template_name = 'meeting/template_list.html'
    context_object_name = 'templates'

    def get_queryset(self):
        return AgendaTemplate.objects.available_to(self.request.user).prefetch_related('items')


class AgendaTemplateCreateView(LoginRequiredMixin, CreateView):
    model = AgendaTemplate
    form_class = AgendaTemplateForm
    template_name = 'meeting/template_form.html'

    def form_valid(self, form):
        form.instance.created_by = self.request.user
        form.instance.is_system = False
        messages.success(self.request, f"Template '{form.instance.name}' created successfully.")
        return super().form_valid(form)

    def get_success_url(self):
        return reverse('agenda_templates:template-detail', kwargs={'pk': self.object.pk})


class AgendaTemplateDetailView(LoginRequiredMixin, DetailView):
    model = AgendaTemplate
    template_name = 'meeting/template_detail.html'
    context_object_name = 'template'

    def get_queryset(self):
        return AgendaTemplate.objects.available_to(self.request.user)

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        template = self.object
        context['items'] = template.items.order_by('order_index', 'id')
        context['item_form'] = AgendaTemplateItemForm()
        context['can_edit'] = self.request.user.is_superuser or (
            not template.is_system and template.created_by_id == self.request.user.pk
        )
        return context


class AgendaTemplateUpdateView(AgendaTemplateAccessMixin, UpdateView):
    model = AgendaTemplate
    form_class = AgendaTemplateForm
    template_name = 'meeting/template_form.html'

    def form_valid(self, form):
        messages.success(self.request, f"Template '{form.instance.name}' updated successfully.")
        return super().form_valid(form)

    def get_success_url(self):
        return reverse('agenda_templates:template-detail', kwargs={'pk': self.object.pk})


class AgendaTemplateDeleteView(AgendaTemplateAccessMixin, DeleteView):
    model = AgendaTemplate
    template_name = 'meeting/template_confirm_delete.html'
    context_object_name = 'template'
    success_url = reverse_lazy('agenda_templates:template-list')

    def form_valid(self, form):
        messages.success(self.request, f"Template '{self.object.name}' deleted successfully.")
        return super().form_valid(form)


def get_editable_template(request, pk):
    template = get_object_or_404(AgendaTemplate.objects.available_to(request.user), pk=pk)
    if not (request.user.is_superuser or (not template.is_system and template.created_by_id == request.user.pk)):
        return None
    return template


@login_required
@require_POST
def template_item_create(request, pk):
    template = get_editable_template(request, pk)
    if template is None:
        messages.error(request, "You can only edit your own templates.")
        return redirect('agenda_templates:template-list')

    form = AgendaTemplateItemForm(request.POST)
    if form.is_valid():
        item = form.save(commit=False)
        item.template = template
        item.order_index = next_order_index(template.items.all())
        item.save()
        messages.success(request, f"'{item.title}' added to the template.")
    else:
        for errors in form.errors.values():
            for error in errors:
                messages.error(request, error)
    return redirect('agenda_templates:template-detail', pk=template.pk)


@login_required
@require_POST
def template_item_delete(request, pk, item_pk):
    template = get_editable_template(request, pk)
    if template is None:
        messages.error(request, "You can only edit your own templates.")
        return redirect('agenda_templates:template-list')
    item = get_object_or_404(AgendaTemplateItem, pk=item_pk, template=template)
    item.delete()
    messages.success(request, f"'{item.title}' removed from the template.")
    return redirect('agenda_templates:template-detail', pk=template.pk)


@login_required
@require_http_methods(["POST"])
def template_item_reorder(request, pk):
    """AJAX view to store the order of a template's items"""
    template = get_editable_template(request, pk)
    if template is None:
        return JsonResponse({'error': 'Permission denied'}, status=403)
    try:
        data = json.loads(request.body)
        changed = reorder_items(template.items.all(), data.get('order', []))
    except (json.JSONDecodeError, AttributeError):
        return JsonResponse({'error': 'Invalid JSON body'}, status=400)
    except ValidationError as e:
        return JsonResponse({'error': ' '.join(e.messages)}, status=400)
    return JsonResponse({'success': True, 'changed': changed})
