"""Error logging service with PII redaction."""

import logging
import re
import traceback
from typing import Any, Dict, Optional

# (pattern, replacement, flags) applied in order
_REDACTIONS = [
    (r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b", "[REDACTED_EMAIL]", 0),
    (r"\b\d{4}[- ]?\d{4}[- ]?\d{4}[- ]?\d{4}\b", "[REDACTED_CC]", 0),
    (r"\b\d{3}[-.]?\d{3}[-.]?\d{4}\b", "[REDACTED_PHONE]", 0),
    (r"(password|passwd|pwd)[\"']?\s*[:=]\s*[\"']?([^\"'\s]+)", r"\1=[REDACTED_PASSWORD]", re.IGNORECASE),
    (r"(token|bearer)[\"']?\s*[:=\s]\s*[\"']?([A-Za-z0-9_-]{20,})", r"\1=[REDACTED_TOKEN]", re.IGNORECASE),
]


class ErrorLoggingService:
    """Service for logging errors with PII redaction."""

    @staticmethod
    def redact_pii(text: str) -> str:
        """
        Redact PII from text.

        Args:
            text: Text potentially containing emails, card/phone numbers,
                passwords or session tokens

        Returns:
            Text with PII redacted
        """
        if not text:
            return text

        for pattern, replacement, flags in _REDACTIONS:
            text = re.sub(pattern, replacement, text, flags=flags)
        return text

    @staticmethod
    def log_error(
        logger: logging.Logger,
        error: Exception,
        context: Optional[Dict[str, Any]] = None,
        user_id: Optional[str] = None,
    ) -> None:
        """
        Log error with PII redaction.

        Args:
            logger: Logger instance
            error: Exception to log
            context: Additional context (will be redacted)
            user_id: User ID (not PII, safe to log)
        """
        error_traceback = "".join(
            traceback.format_exception(type(error), error, error.__traceback__)
        )

        log_parts = [
            f"Error: {ErrorLoggingService.redact_pii(str(error))}",
            f"Type: {type(error).__name__}",
        ]

        if user_id:
            log_parts.append(f"User ID: {user_id}")

        if context:
            safe_context = {
                k: ErrorLoggingService.redact_pii(str(v)) for k, v in context.items()
            }
            log_parts.append(f"Context: {safe_context}")

        log_parts.append(f"Traceback:\n{ErrorLoggingService.redact_pii(error_traceback)}")

        logger.error("\n".join(log_parts))


# Create singleton instance
error_logging_service = ErrorLoggingService()
