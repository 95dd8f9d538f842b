#users/views.py
from django.shortcuts import get_object_or_404, redirect
from django.contrib.auth.mixins import LoginRequiredMixin
from django.contrib.auth import logout
from django.contrib.auth.decorators import login_required
from django.contrib.auth.views import LoginView
from django.contrib import messages
from django.urls import reverse_lazy
from django.views.generic import ListView, DetailView, CreateView, UpdateView
from django.views.decorators.cache import never_cache
from django.views.decorators.http import require_http_methods, require_POST
from django.db.models import Q
from .models import User
from .forms import CustomLoginForm, UserForm
from core.models import AuditLog


class StaffLoginView(LoginView):
    """Username/password sign-in for admin and staff"""
    template_name = 'registration/login.html'
    authentication_form = CustomLoginForm
    redirect_authenticated_user = True


@never_cache
@require_http_methods(["GET", "POST"])
@login_required
def custom_logout(request):
    """
    Custom logout view that properly clears session and prevents caching.
    """
    logout(request)

    response = redirect('users:login')
    response['Cache-Control'] = 'no-cache, no-store, must-revalidate, max-age=0, private'
    response['Pragma'] = 'no-cache'
    response['Expires'] = '0'

    return response


class MaintenancePermissionMixin:
    def dispatch(self, request, *args, **kwargs):
        if not request.user.has_permission('maintenance'):
            messages.error(request, 'You do not have permission to access this page.')
            return redirect('core:dashboard')
        return super().dispatch(request, *args, **kwargs)


class UserListView(LoginRequiredMixin, MaintenancePermissionMixin, ListView):
    """List staff accounts with search and status filters"""
    model = User
    template_name = 'users/user_list.html'
    context_object_name = 'users'
    paginate_by = 15

    def get_queryset(self):
        queryset = User.objects.select_related('role')

        search_query = self.request.GET.get('search')
        if search_query:
            queryset = queryset.filter(
                Q(username__icontains=search_query) |
                Q(first_name__icontains=search_query) |
                Q(last_name__icontains=search_query) |
                Q(email__icontains=search_query)
            )

        status_filter = self.request.GET.get('status')
        if status_filter in dict(User.EMPLOYMENT_STATUS_CHOICES):
            queryset = queryset.filter(employment_status=status_filter)

        return queryset.order_by('username')

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        context.update({
            'search_query': self.request.GET.get('search', ''),
            'status_filter': self.request.GET.get('status', ''),
            'status_choices': User.EMPLOYMENT_STATUS_CHOICES,
        })
        return context


class UserDetailView(LoginRequiredMixin, MaintenancePermissionMixin, DetailView):
    model = User
    template_name = 'users/user_detail.html'
    context_object_name = 'user_obj'


class UserCreateView(LoginRequiredMixin, MaintenancePermissionMixin, CreateView):
    model = User
    form_class = UserForm
    template_name = 'users/user_form.html'

    def get_form_kwargs(self):
        kwargs = super().get_form_kwargs()
        kwargs['is_update'] = False
        return kwargs

    def form_valid(self, form):
        messages.success(self.request, f'User {form.instance.username} created successfully.')
        return super().form_valid(form)

    def get_success_url(self):
        return reverse_lazy('users:user_detail', kwargs={'pk': self.object.pk})


class UserUpdateView(LoginRequiredMixin, MaintenancePermissionMixin, UpdateView):
    model = User
    form_class = UserForm
    template_name = 'users/user_form.html'
    context_object_name = 'user_obj'

    def get_form_kwargs(self):
        kwargs = super().get_form_kwargs()
        kwargs['is_update'] = True
        return kwargs

    def form_valid(self, form):
        # Last admin protection
        if (self.object.role and self.object.role.name == 'admin' and
                form.cleaned_data.get('role') and form.cleaned_data['role'].name != 'admin'):
            admin_count = User.objects.filter(
                role__name='admin',
                is_active=True
            ).exclude(pk=self.object.pk).count()

            if admin_count == 0:
                messages.error(self.request, 'Cannot change role: This is the last admin user in the system.')
                return super().form_invalid(form)

        return super().form_valid(form)

    def get_success_url(self):
        return reverse_lazy('users:user_detail', kwargs={'pk': self.object.pk})


@login_required
@require_POST
def update_employment_status(request, pk):
    """Set a staff member's employment status (active, retired, terminated)"""
    if not request.user.has_permission('maintenance'):
        messages.error(request, 'You do not have permission to perform this action.')
        return redirect('core:dashboard')

    user = get_object_or_404(User, pk=pk)
    new_status = request.POST.get('employment_status')

    if new_status not in dict(User.EMPLOYMENT_STATUS_CHOICES):
        messages.error(request, 'Invalid employment status.')
        return redirect('users:user_detail', pk=pk)

    if user == request.user and new_status in User.BLOCKED_STATUSES:
        messages.error(request, 'You cannot retire or terminate your own account.')
        return redirect('users:user_detail', pk=pk)

    old_status = user.employment_status
    user.employment_status = new_status
    user._skip_audit_log = True
    user.save(update_fields=['employment_status'])

    AuditLog.log_action(
        user=request.user,
        action='status_change',
        model_instance=user,
        changes={
            'employment_status': {'old': old_status, 'new': new_status, 'label': 'Employment Status'}
        },
        request=request,
        description=f"Changed {user.username} employment status to {user.get_employment_status_display()}"
    )

    messages.success(request, f'{user.full_name} is now {user.get_employment_status_display().lower()}.')
    return redirect('users:user_detail', pk=pk)
