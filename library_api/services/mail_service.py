from __future__ import annotations

from flask import current_app
from flask_mail import Message

from library_api.extensions import mail


class MailService:
    @staticmethod
    def send_email(to_email: str, subject: str, body: str) -> tuple[bool, str | None]:
        """
        return: (success, error_text)
        """
        try:
            msg = Message(subject=subject, recipients=[to_email], body=body)
            mail.send(msg)
            return True, None
        except Exception as e:
            current_app.logger.warning(f"[MailService] Mail could not be sent to {to_email}: {e}")
            return False, str(e)

    @staticmethod
    def send_verification_mail(account) -> bool:
        ttl = current_app.config.get("VERIFICATION_CODE_TTL_MINUTES", 15)
        subject = "Library: verify your account"
        body = (
            f"Hello {account.first_name},\n\n"
            f"Your verification code is {account.verification_code}.\n"
            f"It expires in {ttl} minutes.\n"
        )
        ok, _err = MailService.send_email(account.email, subject, body)
        return ok
