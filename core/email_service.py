"""
Transactional email through the Brevo API
"""
from django.template.loader import render_to_string
from django.conf import settings
import logging
import sib_api_v3_sdk
from sib_api_v3_sdk.rest import ApiException

logger = logging.getLogger(__name__)


def send_email_via_api(recipient_email, subject, html_content, recipient_name=None):
    """
    Send one email with Brevo's TransactionalEmailsApi.
    Returns True when Brevo accepted the message.
    """
    if not settings.BREVO_API_KEY:
        logger.warning(f"BREVO_API_KEY is not configured; skipping email to {recipient_email}")
        return False

    configuration = sib_api_v3_sdk.Configuration()
    configuration.api_key['api-key'] = settings.BREVO_API_KEY

    api_instance = sib_api_v3_sdk.TransactionalEmailsApi(
        sib_api_v3_sdk.ApiClient(configuration)
    )

    to = [{"email": recipient_email}]
    if recipient_name:
        to[0]["name"] = recipient_name

    send_smtp_email = sib_api_v3_sdk.SendSmtpEmail(
        to=to,
        sender={
            "name": settings.DEFAULT_FROM_NAME,
            "email": settings.DEFAULT_FROM_EMAIL
        },
        subject=subject,
        html_content=html_content
    )

    try:
        api_response = api_instance.send_transac_email(send_smtp_email)
    except ApiException as e:
        logger.error(f"Brevo API error: {e}")
        logger.error(f"Response body: {getattr(e, 'body', 'No body')}")
        return False

    logger.info(f"Email sent via Brevo API, message ID: {api_response.message_id}")
    return True


class EmailService:
    """Patient notifications for appointment status changes"""

    @staticmethod
    def _send_appointment_email(appointment, subject, template_name, extra_context=None):
        if not appointment.patient_email:
            logger.info(f"Appointment {appointment.id} has no patient email; notification skipped")
            return False

        context = {
            'patient_name': appointment.patient_name,
            'appointment_date': appointment.appointment_date.strftime('%B %d, %Y'),
            'clinic_name': settings.DEFAULT_FROM_NAME,
        }
        context.update(extra_context or {})

        html_message = render_to_string(template_name, context)

        success = send_email_via_api(
            recipient_email=appointment.patient_email,
            subject=subject,
            html_content=html_message,
            recipient_name=appointment.patient_name
        )

        if success:
            logger.info(f"{subject} email sent for appointment {appointment.id}")
        else:
            logger.error(f"Failed to send {subject.lower()} email for appointment {appointment.id}")
        return success

    @staticmethod
    def send_appointment_confirmed_email(appointment):
        return EmailService._send_appointment_email(
            appointment,
            'Appointment Confirmed',
            'emails/appointment_confirmed.html',
        )

    @staticmethod
    def send_appointment_cancelled_email(appointment, reason=''):
        return EmailService._send_appointment_email(
            appointment,
            'Appointment Cancelled',
            'emails/appointment_cancelled.html',
            {'reason': reason},
        )
