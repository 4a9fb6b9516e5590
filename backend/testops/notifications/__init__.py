from .email import EmailAttachment, EmailNotifier, is_valid_email

__all__ = ["EmailAttachment", "EmailNotifier", "is_valid_email"]
