from core.models import SystemSetting


def clinic_settings(request):
    """Make clinic settings available in all templates"""
    defaults = SystemSetting.DEFAULTS
    return {
        'CLINIC_NAME': SystemSetting.get_setting('clinic_name', defaults['clinic_name'][0]),
        'CLINIC_ADDRESS': SystemSetting.get_setting('clinic_address', defaults['clinic_address'][0]),
        'CLINIC_PHONE': SystemSetting.get_setting('clinic_phone', ''),
    }
