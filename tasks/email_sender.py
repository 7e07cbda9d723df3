# tasks/email_sender.py
"""
Celery email delivery.

Messages travel as JSON-serialisable dicts (attachments base64 encoded) so
the same delivery path serves both the background task and synchronous
sends from request handlers:
- MIME assembly with an HTML body, plain-text alternative and attachments
- SMTP via aiosmtplib (implicit TLS on 465, STARTTLS on 587)
- Retry with exponential backoff on connection errors
"""

import asyncio
import base64
import os
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formatdate, make_msgid
from typing import Any, Dict

import aiosmtplib
from celery import Celery
from celery.exceptions import Retry
from celery.signals import task_failure, task_postrun, task_prerun
from celery.utils.log import get_task_logger

from core.errors import IntegrationError

logger = get_task_logger(__name__)

celery_app = Celery('cbm_site')
celery_app.conf.update({
    # Broker and Result Backend
    'broker_url': os.environ.get('CELERY_BROKER_URL', 'redis://localhost:6379/0'),
    'task_ignore_result': True,

    # Serialization
    'task_serializer': 'json',
    'result_serializer': 'json',
    'accept_content': ['json'],

    # Timezone
    'timezone': 'UTC',
    'enable_utc': True,

    # Task Execution
    'task_acks_late': True,
    'task_reject_on_worker_lost': True,
    'worker_prefetch_multiplier': 1,

    # Routing
    'task_routes': {
        'tasks.email_sender.send_email': {'queue': 'email_sending'},
    },

    'worker_hijack_root_logger': False,
    'worker_log_color': False,
})

SMTP_CONNECTION_ERRORS = (
    aiosmtplib.SMTPConnectError,
    aiosmtplib.SMTPServerDisconnected,
    aiosmtplib.SMTPTimeoutError,
    ConnectionError,
)


class EmailDeliveryError(IntegrationError):
    """The SMTP server rejected a message"""
    pass


def build_mime_message(message: Dict[str, Any]) -> MIMEMultipart:
    """Assemble a MIME message from a serialised message dict"""
    msg = MIMEMultipart('mixed')
    msg['Subject'] = message['subject']
    msg['From'] = message['from']
    msg['To'] = ', '.join(message['to'])
    if message.get('reply_to'):
        msg['Reply-To'] = message['reply_to']
    msg['Date'] = formatdate(localtime=True)
    msg['Message-ID'] = make_msgid(domain=message.get('domain'))

    body = MIMEMultipart('alternative')
    if message.get('text'):
        body.attach(MIMEText(message['text'], 'plain', 'utf-8'))
    body.attach(MIMEText(message['html'], 'html', 'utf-8'))
    msg.attach(body)

    for attachment in message.get('attachments') or []:
        _, subtype = attachment.get('mimetype', 'application/octet-stream').split('/', 1)
        part = MIMEApplication(base64.b64decode(attachment['content']), _subtype=subtype)
        part.add_header('Content-Disposition', 'attachment', filename=attachment['filename'])
        msg.attach(part)

    return msg


async def _async_send_smtp(msg: MIMEMultipart, smtp_config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Send one message; connection failures propagate so the caller can retry,
    SMTP rejections come back as an unsuccessful result
    """
    smtp = aiosmtplib.SMTP(
        hostname=smtp_config['host'],
        port=smtp_config['port'],
        timeout=smtp_config.get('timeout', 60),
        use_tls=smtp_config.get('port') == 465,
        start_tls=False,
        validate_certs=smtp_config.get('validate_certs', True)
    )
    await smtp.connect()
    try:
        if smtp_config.get('port') == 587:
            await smtp.starttls()
        if smtp_config.get('username') and smtp_config.get('password'):
            await smtp.login(smtp_config['username'], smtp_config['password'])
        await smtp.send_message(msg)
    except aiosmtplib.SMTPResponseException as e:
        return {
            'success': False,
            'response': f"{e.code} {e.message}",
            'error': str(e)
        }
    finally:
        if smtp.is_connected:
            await smtp.quit()

    return {
        'success': True,
        'response': '250 Message accepted',
        'message_id': msg['Message-ID']
    }


def deliver_message(message: Dict[str, Any], smtp_config: Dict[str, Any]) -> Dict[str, Any]:
    """Send synchronously; raises EmailDeliveryError when the server rejects the message"""
    msg = build_mime_message(message)
    result = asyncio.run(_async_send_smtp(msg, smtp_config))
    if not result['success']:
        raise EmailDeliveryError(f"SMTP rejected '{message['subject']}': {result['response']}")
    logger.info(f"Email '{message['subject']}' sent to {', '.join(message['to'])}")
    return result


@celery_app.task(bind=True, max_retries=5, default_retry_delay=60)
def send_email(self, message: Dict[str, Any], smtp_config: Dict[str, Any]) -> Dict[str, Any]:
    """Background send with exponential backoff on connection errors"""
    recipients = ', '.join(message.get('to', []))
    logger.info(f"Starting email send task {self.request.id} for {recipients}")

    try:
        return deliver_message(message, smtp_config)
    except Retry:
        raise
    except SMTP_CONNECTION_ERRORS as exc:
        retry_delay = min(300, 60 * (2 ** self.request.retries))
        logger.warning(f"Connection error sending to {recipients}, retrying in {retry_delay}s: {exc}")
        raise self.retry(exc=exc, countdown=retry_delay)
    except EmailDeliveryError as e:
        logger.error(str(e))
        return {'success': False, 'error': str(e)}


@task_prerun.connect
def task_prerun_handler(sender=None, task_id=None, task=None, args=None, kwargs=None, **extra):
    logger.info(f"Task {task.name} [{task_id}] starting")


@task_postrun.connect
def task_postrun_handler(sender=None, task_id=None, task=None, args=None, kwargs=None,
                         retval=None, state=None, **extra):
    logger.info(f"Task {task.name} [{task_id}] completed with state: {state}")


@task_failure.connect
def task_failure_handler(sender=None, task_id=None, exception=None, einfo=None, **extra):
    logger.error(f"Task {sender.name} [{task_id}] failed: {exception}")
