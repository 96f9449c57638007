import pytest

from backend.app.services import candidate_aggregate, candidate_service
from backend.app.services.candidate_gateway import count_candidates
from backend.app.services.candidate_service import add_candidate, create_candidate, get_candidate
from backend.app.utils.error_handlers import DuplicateEmailError, ValidationError


@pytest.fixture()
def recorded_inserts(monkeypatch):
    """Replace the storage insert with a recorder; validation failures must never reach it."""
    calls = []

    def fake_insert(db, candidate, strategy=None):
        calls.append(candidate)
        raise AssertionError("storage must not be called")

    monkeypatch.setattr(candidate_aggregate, "insert_candidate", fake_insert)
    return calls


@pytest.mark.parametrize(
    "email",
    ["invalid-email", "@example.com", "john@", "john@@example.com", "a@b@c", "", None],
)
def test_invalid_email_fails_without_persisting(db_session, candidate_payload, recorded_inserts, email):
    result = add_candidate(db_session, {**candidate_payload, "email": email})
    assert result.success is False
    assert result.error_type == "validation"
    assert result.message == "Invalid email"
    assert recorded_inserts == []


def test_invalid_education_fails_before_storage(db_session, candidate_payload, recorded_inserts):
    payload = {
        **candidate_payload,
        "educations": [
            {"institution": "Valid U", "title": "BSc"},
            {"institution": "", "title": "MSc"},
        ],
    }
    with pytest.raises(ValidationError, match="Institution name is required"):
        create_candidate(db_session, payload)
    assert recorded_inserts == []


class TestValidationPrecedence:
    def test_email_reported_before_work_experience(self, db_session, candidate_payload):
        payload = {
            **candidate_payload,
            "email": "invalid-email",
            "workExperiences": [{"company": "", "position": "Software Engineer"}],
        }
        result = add_candidate(db_session, payload, require_resume=True)
        assert result.message == "Invalid email"

    def test_education_reported_before_work_experience(self, db_session, candidate_payload):
        payload = {
            **candidate_payload,
            "educations": [{"institution": ""}],
            "workExperiences": [{"company": ""}],
        }
        result = add_candidate(db_session, payload)
        assert result.message == "Institution name is required"

    def test_work_experience_reported_before_resume(self, db_session, candidate_payload):
        payload = {
            **candidate_payload,
            "workExperiences": [{"company": ""}],
            "cv": {"filePath": ""},
        }
        result = add_candidate(db_session, payload)
        assert result.message == "Company name is required"

    def test_work_experience_reported_before_missing_resume(self, db_session, candidate_payload):
        payload = {**candidate_payload, "workExperiences": [{"company": ""}]}
        result = add_candidate(db_session, payload, require_resume=True)
        assert result.message == "Company name is required"

    def test_first_invalid_entry_in_array_order_wins(self, db_session, candidate_payload):
        payload = {
            **candidate_payload,
            "workExperiences": [
                {"company": "Acme", "startDate": "not-a-date"},
                {"company": ""},
            ],
        }
        result = add_candidate(db_session, payload)
        assert result.message == "Invalid date for Work experience start date"


class TestResumeRequirement:
    def test_zero_resumes_accepted_by_default(self, db_session, candidate_payload, monkeypatch):
        monkeypatch.setattr(candidate_service, "REQUIRE_RESUME", False)
        result = add_candidate(db_session, candidate_payload)
        assert result.success is True
        assert result.data["resumes"] == []

    def test_zero_resumes_rejected_when_required(self, db_session, candidate_payload, monkeypatch):
        monkeypatch.setattr(candidate_service, "REQUIRE_RESUME", True)
        result = add_candidate(db_session, candidate_payload)
        assert result.success is False
        assert result.error_type == "validation"
        assert result.message == "At least one resume is required"
        assert count_candidates(db_session) == 0

    def test_resume_satisfies_requirement(self, db_session, candidate_payload):
        payload = {**candidate_payload, "resumes": [{"filePath": "resumes/a.pdf", "fileType": "application/pdf"}]}
        result = add_candidate(db_session, payload, require_resume=True)
        assert result.success is True
        assert len(result.data["resumes"]) == 1


def test_duplicate_email_reported_with_its_own_kind(db_session, candidate_payload):
    assert add_candidate(db_session, candidate_payload).success is True

    result = add_candidate(db_session, {**candidate_payload, "firstName": "Other"})
    assert result.success is False
    assert result.error_type == "duplicate_email"
    assert result.message == "The email already exists in the database"
    assert count_candidates(db_session) == 1


def test_create_candidate_propagates_duplicate_error_unchanged(db_session, candidate_payload):
    create_candidate(db_session, candidate_payload)
    with pytest.raises(DuplicateEmailError) as exc:
        create_candidate(db_session, candidate_payload)
    assert exc.value.message == "The email already exists in the database"


def test_round_trip_through_lookup(db_session, full_candidate_payload):
    result = add_candidate(db_session, full_candidate_payload)
    assert result.success is True

    found = get_candidate(db_session, result.data["id"])
    for key in ("firstName", "lastName", "email", "phone", "address"):
        assert found[key] == full_candidate_payload[key]
    assert found["educations"] == full_candidate_payload["educations"]
    assert found["workExperiences"] == full_candidate_payload["workExperiences"]


def test_lookup_is_idempotent(db_session, full_candidate_payload):
    candidate_id = add_candidate(db_session, full_candidate_payload).data["id"]
    assert get_candidate(db_session, candidate_id) == get_candidate(db_session, candidate_id)


def test_lookup_of_unknown_candidate_returns_none(db_session):
    assert get_candidate(db_session, 12345) is None


def test_singular_collection_keys_are_accepted(db_session, candidate_payload):
    payload = dict(candidate_payload)
    del payload["educations"]
    del payload["workExperiences"]
    payload["education"] = [{"institution": "Old Client U"}]
    payload["workExperience"] = [{"company": "Old Client Inc"}]

    result = add_candidate(db_session, payload)
    assert result.success is True
    assert result.data["educations"][0]["institution"] == "Old Client U"
    assert result.data["workExperiences"][0]["company"] == "Old Client Inc"
