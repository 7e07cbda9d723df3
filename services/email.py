# services/email.py
"""
Transactional email for the public forms and admin login.

Bodies are rendered from the Jinja2 templates in ``core.email_templates``
and delivered through ``tasks.email_sender``. Without SMTP credentials
every send is logged and skipped.
"""

import base64
import logging
from dataclasses import dataclass
from datetime import datetime
from email.utils import formataddr
from typing import Any, Dict, Iterable, List, Optional

from flask import current_app

from core.errors import ApiError
from core.template_engine import ContentType, template_engine
from tasks.email_sender import deliver_message, send_email

logger = logging.getLogger(__name__)

INQUIRY_FIELDS = ('firstName', 'lastName', 'email', 'phone', 'company', 'industry', 'service', 'message', 'consent')
VERIFICATION_FIELDS = ('firstName', 'lastName', 'email', 'companyName', 'jobTitle', 'location', 'comments')
APPLICATION_FIELDS = (
    'firstName', 'lastName', 'email', 'phone', 'position', 'department', 'experience', 'coverLetter',
    'linkedinProfile', 'portfolio', 'availableFrom', 'expectedSalary',
)


@dataclass
class Attachment:
    filename: str
    mimetype: str
    data: bytes

    def serialize(self) -> Dict[str, str]:
        return {
            'filename': self.filename,
            'mimetype': self.mimetype,
            'content': base64.b64encode(self.data).decode('ascii'),
        }


@dataclass
class SendResult:
    sent: bool
    message_id: Optional[str] = None
    skipped: bool = False


def _complete(data: Dict[str, Any], fields: Iterable[str]) -> Dict[str, Any]:
    """Templates render with StrictUndefined, so every field must be present"""
    return {field: data.get(field) for field in fields}


class EmailService:
    """Reads SMTP settings from the active app config on every send"""

    @staticmethod
    def _config():
        return current_app.config

    @property
    def configured(self) -> bool:
        config = self._config()
        return bool(config.get('SMTP_HOST') and config.get('SMTP_USER') and config.get('SMTP_PASS'))

    def smtp_config(self) -> Dict[str, Any]:
        config = self._config()
        return {
            'host': config['SMTP_HOST'],
            'port': config['SMTP_PORT'],
            'username': config['SMTP_USER'],
            'password': config['SMTP_PASS'],
            'timeout': config.get('SMTP_TIMEOUT', 30),
        }

    def admin_email(self) -> str:
        address = self._config().get('ADMIN_EMAIL')
        if not address:
            raise ApiError(500, 'Admin email is not configured')
        return address

    def compose(self, template: str, variables: Dict[str, Any], subject: str, to: List[str],
                display_name: str = 'CBM', reply_to: Optional[str] = None,
                attachments: Iterable[Attachment] = ()) -> Dict[str, Any]:
        rendered = template_engine.render_template(template, variables, content_type=ContentType.MIXED)
        return {
            'subject': subject,
            'from': formataddr((display_name, self._config().get('SMTP_USER') or '')),
            'to': to,
            'reply_to': reply_to,
            'html': rendered.html,
            'text': rendered.text,
            'attachments': [attachment.serialize() for attachment in attachments],
            'domain': self._config().get('MAIL_DOMAIN'),
        }

    def deliver(self, message: Dict[str, Any]) -> SendResult:
        """Send now; SMTP failures propagate as EmailDeliveryError or connection errors"""
        if not self.configured:
            logger.warning(f"SMTP credentials not configured, skipping email '{message['subject']}'")
            return SendResult(sent=False, skipped=True)
        result = deliver_message(message, self.smtp_config())
        return SendResult(sent=True, message_id=result.get('message_id'))

    def queue(self, message: Dict[str, Any]) -> bool:
        """Hand the message to the Celery worker; returns whether it was queued"""
        if not self.configured:
            logger.warning(f"SMTP credentials not configured, skipping email '{message['subject']}'")
            return False
        send_email.delay(message, self.smtp_config())
        return True

    @staticmethod
    def _submitted_at() -> str:
        return datetime.utcnow().strftime('%Y-%m-%d %H:%M UTC')

    def send_contact_inquiry(self, inquiry: Dict[str, Any]) -> SendResult:
        inquiry = _complete(inquiry, INQUIRY_FIELDS)
        message = self.compose(
            'contact_inquiry.html',
            {'inquiry': inquiry, 'submitted_at': self._submitted_at()},
            subject=f"New Contact Inquiry from {inquiry['firstName']} {inquiry['lastName']} ({inquiry['company']})",
            to=[self.admin_email()],
            display_name='CBM Contact',
            reply_to=inquiry['email']
        )
        result = self.deliver(message)
        logger.info(f"Contact inquiry from {inquiry['email']} processed (sent={result.sent})")
        return result

    def send_document_verification(self, verification: Dict[str, Any],
                                   attachments: List[Attachment]) -> SendResult:
        verification = _complete(verification, VERIFICATION_FIELDS)
        message = self.compose(
            'document_verification.html',
            {
                'verification': verification,
                'attachments': [attachment.filename for attachment in attachments],
                'submitted_at': self._submitted_at(),
            },
            subject=f"Document Verification Request - {verification['firstName']} {verification['lastName']}",
            to=[self.admin_email()],
            display_name='CBM Verification',
            reply_to=verification['email'],
            attachments=attachments
        )
        return self.deliver(message)

    def send_job_application(self, application: Dict[str, Any], resume: Attachment) -> SendResult:
        application = _complete(application, APPLICATION_FIELDS)
        message = self.compose(
            'job_application.html',
            {'application': application, 'resume_name': resume.filename, 'submitted_at': self._submitted_at()},
            subject=f"New Job Application: {application['position']}",
            to=[self.admin_email()],
            display_name='CBM Careers',
            reply_to=application['email'],
            attachments=[resume]
        )
        return self.deliver(message)

    def send_application_confirmation(self, application: Dict[str, Any]) -> SendResult:
        application = _complete(application, APPLICATION_FIELDS)
        message = self.compose(
            'application_confirmation.html',
            {'application': application, 'submitted_at': self._submitted_at()},
            subject='Application Received - CBM Careers',
            to=[application['email']],
            display_name='CBM Careers'
        )
        return self.deliver(message)

    def send_otp(self, email: str, code: str, ttl_seconds: int) -> bool:
        message = self.compose(
            'otp_code.html',
            {'code': code, 'ttl_minutes': max(1, ttl_seconds // 60)},
            subject='Your CBM admin login code',
            to=[email],
            display_name='CBM Admin'
        )
        return self.queue(message)


email_service = EmailService()
