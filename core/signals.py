# core/signals.py
import sys
from datetime import timedelta

from django.db.models.signals import post_save, pre_save, post_delete
from django.dispatch import receiver
from django.contrib.auth.signals import user_logged_in, user_logged_out, user_login_failed
from django.utils import timezone

from .models import AuditLog
from .middleware import get_current_user

SKIP_MODELS = ['AuditLog', 'Session', 'LogEntry', 'ContentType', 'Permission', 'DoseUpdate', 'GroupMessage']

APPOINTMENT_STATUS_ACTIONS = {
    'confirmed': 'confirm',
    'cancelled': 'cancel',
    'completed': 'complete',
}

# Original rows keyed by "<Model>_<pk>", filled in pre_save and consumed in post_save
_original_instances = {}


def _audit_disabled(sender, instance):
    if 'migrate' in sys.argv or 'test' in sys.argv:
        return True
    if sender.__name__ in SKIP_MODELS:
        return True
    return getattr(instance, '_skip_audit_log', False)


@receiver(pre_save)
def store_original_instance(sender, instance, **kwargs):
    """Store original instance before save for comparison"""
    if _audit_disabled(sender, instance) or not instance.pk:
        return
    try:
        _original_instances[f"{sender.__name__}_{instance.pk}"] = sender.objects.get(pk=instance.pk)
    except sender.DoesNotExist:
        pass


@receiver(post_save)
def log_model_save(sender, instance, created, **kwargs):
    """Automatically log create and update actions"""
    if _audit_disabled(sender, instance):
        return

    user = get_current_user() or getattr(instance, '_current_user', None)

    if created:
        action = 'create'
        changes = {}
        description = f"Created new {sender._meta.verbose_name}: {instance}"
    else:
        action = 'update'
        original = _original_instances.pop(f"{sender.__name__}_{instance.pk}", None)
        if original is None:
            changes = {}
            description = f"Updated {sender._meta.verbose_name}: {instance}"
        else:
            changes = AuditLog.get_field_changes(original, instance)
            if not changes:
                return
            changed_fields = ', '.join(v['label'] for v in changes.values())
            description = f"Updated {sender._meta.verbose_name}: {changed_fields}"

    if sender.__name__ == 'User' and 'password' in changes:
        changes['password'] = {'old': '••••••••', 'new': '••••••••', 'label': 'Password'}
        description = "Changed password"

    elif sender.__name__ == 'Appointment' and changes.get('status'):
        new_status = changes['status']['new']
        action = APPOINTMENT_STATUS_ACTIONS.get(new_status, 'status_change')
        description = f"Appointment {changes['status']['old']} → {new_status}"

    AuditLog.objects.create(
        user=user,
        action=action,
        model_name=sender._meta.model_name,
        object_id=instance.pk,
        object_repr=str(instance)[:200],
        changes=changes,
        description=description
    )


@receiver(post_delete)
def log_model_delete(sender, instance, **kwargs):
    """Automatically log delete actions"""
    if _audit_disabled(sender, instance):
        return

    AuditLog.objects.create(
        user=get_current_user() or getattr(instance, '_current_user', None),
        action='delete',
        model_name=sender._meta.model_name,
        object_id=instance.pk,
        object_repr=str(instance)[:200],
        description=f"Deleted {sender._meta.verbose_name}: {instance}"
    )


@receiver(user_logged_in)
def log_user_login(sender, request, user, **kwargs):
    AuditLog.log_auth_event('login', request, user=user, description='User logged in successfully')


@receiver(user_logged_out)
def log_user_logout(sender, request, user, **kwargs):
    if user:
        AuditLog.log_auth_event('logout', request, user=user, description='User logged out')


@receiver(user_login_failed)
def log_failed_login(sender, credentials, request=None, **kwargs):
    """Log unknown usernames immediately, known ones from the 5th failure in 30 minutes"""
    from users.models import User

    username = credentials.get('username')
    user = User.objects.filter(username=username).first() if username else None

    if user is None:
        AuditLog.log_auth_event(
            'login_failed', request, username=username,
            description=f"Failed login attempt with unknown username: {username}"
        )
        return

    recent_failures = AuditLog.objects.filter(
        object_id=user.pk,
        model_name='user',
        action='login_failed',
        timestamp__gte=timezone.now() - timedelta(minutes=30)
    ).count()

    if recent_failures >= 4:
        AuditLog.log_auth_event(
            'login_failed', request, user=user,
            description=f"Multiple failed login attempts ({recent_failures + 1})"
        )
