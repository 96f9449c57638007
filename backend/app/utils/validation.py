"""
Validation utilities for candidate payloads.

Every validator either returns a normalized value or raises ValidationError with a
message that is shown to the user verbatim. No I/O happens here.
"""
from datetime import date, datetime, timezone
from typing import Any

from .error_handlers import ValidationError, get_error_message


def validate_email(email: Any) -> str:
    """Exactly one "@" with non-empty local and domain parts."""
    if not isinstance(email, str):
        raise ValidationError(get_error_message("invalid_email"))

    email = email.strip()
    local, sep, domain = email.partition("@")
    if not sep or not local or not domain or "@" in domain:
        raise ValidationError(get_error_message("invalid_email"))

    if len(email) > 255:
        raise ValidationError("Email too long (max 255 characters)")

    return email


def validate_string_field(
    value: Any,
    field_name: str,
    min_length: int = 1,
    max_length: int = 1000,
    required: bool = True,
    message: str | None = None,
) -> str | None:
    """Validate a string field with common rules."""
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise ValidationError(message or f"{field_name} is required")
        return None

    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a string")

    value = value.strip()

    if len(value) < min_length:
        raise ValidationError(f"{field_name} must be at least {min_length} characters")

    if len(value) > max_length:
        raise ValidationError(f"{field_name} must not exceed {max_length} characters")

    return value


def validate_date(value: Any, field_name: str, required: bool = False) -> date | None:
    """Accepts YYYY-MM-DD or a full ISO datetime (only the date part is kept)."""
    if value is None or value == "":
        if required:
            raise ValidationError(f"{field_name} is required")
        return None

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            pass

    raise ValidationError(f"Invalid date for {field_name}")


def _parse_timestamp(value: Any, field_name: str) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            raise ValidationError(f"Invalid date for {field_name}")
    if not isinstance(value, datetime):
        raise ValidationError(f"Invalid date for {field_name}")
    # Stored as naive UTC; naive input is taken to be UTC already.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _validate_period(entry: dict, label: str) -> tuple[date | None, date | None]:
    start = validate_date(entry.get("startDate"), f"{label} start date")
    end = validate_date(entry.get("endDate"), f"{label} end date")
    if start and end and end < start:
        raise ValidationError(f"{label} end date must not be before start date")
    return start, end


def validate_education(entry: Any) -> dict:
    if not isinstance(entry, dict):
        raise ValidationError("Education entry must be an object")

    institution = validate_string_field(
        entry.get("institution"),
        "Institution name",
        max_length=255,
        message="Institution name is required",
    )
    title = validate_string_field(entry.get("title"), "Title", max_length=255, required=False)
    start_date, end_date = _validate_period(entry, "Education")

    return {
        "institution": institution,
        "title": title,
        "start_date": start_date,
        "end_date": end_date,
    }


def validate_work_experience(entry: Any) -> dict:
    if not isinstance(entry, dict):
        raise ValidationError("Work experience entry must be an object")

    company = validate_string_field(
        entry.get("company"),
        "Company name",
        max_length=255,
        message="Company name is required",
    )
    position = validate_string_field(entry.get("position"), "Position", max_length=255, required=False)
    description = validate_string_field(entry.get("description"), "Description", max_length=2000, required=False)
    start_date, end_date = _validate_period(entry, "Work experience")

    return {
        "company": company,
        "position": position,
        "start_date": start_date,
        "end_date": end_date,
        "description": description,
    }


def validate_resume(entry: Any) -> dict:
    if not isinstance(entry, dict):
        raise ValidationError(get_error_message("invalid_cv"))

    file_path = entry.get("filePath")
    if not isinstance(file_path, str) or not file_path.strip():
        raise ValidationError(get_error_message("invalid_cv"))

    file_type = validate_string_field(entry.get("fileType"), "File type", max_length=120, required=False)
    upload_date = _parse_timestamp(entry.get("uploadDate"), "resume upload date")

    return {
        "file_path": file_path.strip(),
        "file_type": file_type,
        "upload_date": upload_date,
    }


def validate_cv(resumes: list, require_resume: bool = False) -> list[dict]:
    if require_resume and not resumes:
        raise ValidationError(get_error_message("resume_required"))
    return [validate_resume(r) for r in resumes]


def _as_list(value: Any, field_name: str) -> list:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValidationError(f"{field_name} must be a list")
    return value


def _collect_resumes(payload: dict) -> list:
    # The form sends a single `cv` object (or null); API clients may send `resumes`.
    resumes = list(_as_list(payload.get("resumes"), "Resumes"))
    cv = payload.get("cv")
    if cv is not None:
        resumes.append(cv)
    return resumes


def validate_candidate_data(payload: Any, require_resume: bool = False) -> dict:
    """
    Validate a raw candidate payload and return it normalized (snake_case keys, parsed dates).

    Checks run in a fixed order and stop at the first violation:
    email, names, contact fields, each education, each work experience, then resumes.
    When several fields are wrong, the reported error is the earliest one in that order.
    """
    if not isinstance(payload, dict) or not payload:
        raise ValidationError(get_error_message("candidate_add_failed"))

    email = validate_email(payload.get("email"))
    first_name = validate_string_field(
        payload.get("firstName"), "First name", max_length=100, message="First name is required"
    )
    last_name = validate_string_field(
        payload.get("lastName"), "Last name", max_length=100, message="Last name is required"
    )
    phone = validate_string_field(payload.get("phone"), "Phone", max_length=50, required=False)
    address = validate_string_field(payload.get("address"), "Address", max_length=255, required=False)

    # Accept the singular keys used by older clients.
    raw_educations = payload.get("educations", payload.get("education"))
    raw_work = payload.get("workExperiences", payload.get("workExperience"))

    educations = [validate_education(e) for e in _as_list(raw_educations, "Educations")]
    work_experiences = [validate_work_experience(w) for w in _as_list(raw_work, "Work experiences")]
    resumes = validate_cv(_collect_resumes(payload), require_resume=require_resume)

    return {
        "first_name": first_name,
        "last_name": last_name,
        "email": email,
        "phone": phone,
        "address": address,
        "educations": educations,
        "work_experiences": work_experiences,
        "resumes": resumes,
    }


def sanitize_filename(filename: str) -> str:
    """Sanitize filename to prevent directory traversal and other attacks."""
    if not filename:
        raise ValidationError("Filename is required")

    # Remove any path separators
    filename = filename.replace("/", "_").replace("\\", "_")

    # Remove any null bytes
    filename = filename.replace("\x00", "")

    # Remove directory traversal sequences
    filename = filename.replace("..", "_")

    # Remove leading dots to prevent hidden files
    filename = filename.lstrip(".")

    if len(filename) > 255:
        raise ValidationError("Filename too long")

    if not filename or filename == "_":
        raise ValidationError("Invalid filename")

    return filename
