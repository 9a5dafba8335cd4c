import logging

from flask import render_template
from flask_mail import Message

from docverify.extensions.mail import mail

logger = logging.getLogger(__name__)


def send_email(subject: str, recipients: list, body: str) -> bool:

    msg = Message(
        subject=subject,
        recipients=recipients,
        html=body
    )

    mail.send(msg)

    return True

def create_manual_review_email_body(info: dict) -> str:

    staff_email_body = render_template(
        'manual_review.html',
        document_type=info['Document_Type'],
        full_name=info['Full_Name'],
        public_url=info['Public_URL'],
        issues=info['Issues']
    )

    return staff_email_body

def notify_manual_review(recipients: list, info: dict) -> bool:
    """
    Tell staff that an uploaded document needs a manual check.

    Mail problems are logged and reported as False; they never fail the upload.
    """
    if not recipients:
        return False
    try:
        return send_email(
            subject=f"Manual Review Required for {info['Document_Type']} Verification",
            recipients=recipients,
            body=create_manual_review_email_body(info)
        )
    except Exception as e:
        logger.error("Failed to send manual review email: %s", e)
        return False
