"""Thin SMTP wrapper used by the alarm notifications."""

from __future__ import annotations

import smtplib
from email.message import EmailMessage
from typing import Iterable, Optional, Sequence

from flask import has_app_context

from nimbus.app.settings import get_app_settings
from nimbus.utils.logs import logger


def _normalise_recipients(recipients: Iterable[str]) -> Sequence[str]:
    unique = []
    seen = set()
    for recipient in recipients:
        if not recipient:
            continue
        value = recipient.strip()
        if not value or value in seen:
            continue
        unique.append(value)
        seen.add(value)
    return unique


def send_email(
    subject: str,
    body: str,
    recipients: Iterable[str],
    *,
    html_body: Optional[str] = None,
) -> bool:
    """Send an email using the SMTP settings of the running application."""

    normalised = _normalise_recipients(recipients)
    if not normalised:
        logger.debug("Nenhum destinatário válido para enviar email de alarme")
        return False

    if not has_app_context():
        logger.warning("Tentativa de envio de email fora do contexto da aplicação")
        return False

    settings = get_app_settings()
    if not settings.features.enable_email:
        logger.info("Envio de email desativado pelas configurações da aplicação")
        return False

    mail = settings.mail
    if mail.suppress_send:
        logger.info("Envio de email suprimido (MAIL_SUPPRESS_SEND=True)")
        return True

    message = EmailMessage()
    message["Subject"] = subject
    message["From"] = mail.default_sender
    message["To"] = ", ".join(normalised)
    message.set_content(body)
    if html_body:
        message.add_alternative(html_body, subtype="html")

    try:
        if mail.use_ssl:
            smtp = smtplib.SMTP_SSL(mail.server, mail.port, timeout=10)
        else:
            smtp = smtplib.SMTP(mail.server, mail.port, timeout=10)

        with smtp:
            if mail.use_tls and not mail.use_ssl:
                smtp.starttls()
            if mail.username and mail.password:
                smtp.login(mail.username, mail.password)
            smtp.send_message(message)
        logger.info("Email de alarme enviado para %s", normalised)
        return True
    except (smtplib.SMTPException, OSError):
        logger.exception("Erro ao enviar email de alarme para %s", normalised)
        return False


__all__ = ["send_email"]
