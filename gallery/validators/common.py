from gallery.models.upload import ValidationResult, ValidationStatus


def accepted(mimetype: str) -> ValidationResult:
    return ValidationResult(status=ValidationStatus.ACCEPTED, mimetype=mimetype)


def rejected(reason: str) -> ValidationResult:
    return ValidationResult(status=ValidationStatus.REJECTED, reason=reason)
