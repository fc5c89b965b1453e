from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail, To
from flask import current_app

from ..errors import MailError


def _test_prefix():
    return "TEST " if current_app.config.get('APP_ENV') == 'development' else ""


def send_update(to_email, to_name, subject, html):
    """Send one updates email through SendGrid; returns (status, message id)."""
    sg = SendGridAPIClient(api_key=current_app.config['SENDGRID_API_KEY'])
    message = Mail(from_email=(current_app.config['MAIL_FROM'], f"{_test_prefix()}{current_app.config['MAIL_FROM_NAME']}"),
                   to_emails=To(to_email, to_name),
                   subject=f"{_test_prefix()}{subject}",
                   html_content=html)
    resp = sg.send(message)
    if resp.status_code >= 300:
        raise MailError(f"sendgrid returned {resp.status_code} for {to_email}")
    headers = getattr(resp, 'headers', None) or {}
    return resp.status_code, headers.get('X-Message-Id')
