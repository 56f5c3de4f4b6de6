from datetime import date

import pytest

from student_records.errors import ValidationError
from student_records.validation import validate_create, validate_partial_update


def violated_fields(exc_info):
    return {v["field"] for v in exc_info.value.violations}


def test_valid_create_payload(ada_payload):
    student = validate_create(ada_payload)

    assert student.first_name == "Ada"
    assert student.enrollment_date == date(2024, 9, 1)
    assert student.phone is None
    assert student.graduation_year is None


def test_create_accepts_optional_fields(ada_payload):
    ada_payload.update({"phone": "+1 (555) 010-2030", "graduationYear": 2028})

    student = validate_create(ada_payload)

    assert student.phone == "+1 (555) 010-2030"
    assert student.graduation_year == 2028


@pytest.mark.parametrize("raw", [
    "2022-02-08T00:00:00.000Z",
    "2022-02-08T15:30:00",
    "2022-02-08T23:00:00+00:00",
])
def test_enrollment_date_normalized_from_datetime(ada_payload, raw):
    ada_payload["enrollmentDate"] = raw

    assert validate_create(ada_payload).enrollment_date == date(2022, 2, 8)


@pytest.mark.parametrize("raw", [
    "2024/09/01",
    "September 1, 2024",
    "Sun, 01 Sep 2024 00:00:00 GMT",
    "09/01/2024",
])
def test_enrollment_date_free_form(ada_payload, raw):
    ada_payload["enrollmentDate"] = raw

    assert validate_create(ada_payload).enrollment_date == date(2024, 9, 1)


@pytest.mark.parametrize("raw", ["not a date", "", 20240901])
def test_unparseable_enrollment_date(ada_payload, raw):
    ada_payload["enrollmentDate"] = raw

    with pytest.raises(ValidationError) as exc_info:
        validate_create(ada_payload)

    assert violated_fields(exc_info) == {"enrollmentDate"}


def test_empty_create_reports_every_missing_field():
    with pytest.raises(ValidationError) as exc_info:
        validate_create({})

    assert violated_fields(exc_info) == {
        "firstName", "lastName", "email", "enrollmentDate", "major", "status"
    }


def test_invalid_email(ada_payload):
    ada_payload["email"] = "not-an-email"

    with pytest.raises(ValidationError) as exc_info:
        validate_create(ada_payload)

    assert violated_fields(exc_info) == {"email"}
    assert exc_info.value.violations[0]["message"]


def test_email_kept_as_submitted(ada_payload):
    ada_payload["email"] = "Ada.Lovelace@Example.COM"

    assert validate_create(ada_payload).email == "Ada.Lovelace@Example.COM"


def test_overlong_email(ada_payload):
    ada_payload["email"] = ("a" * 60) + "@" + ".".join(["b" * 60] * 4) + ".com"

    with pytest.raises(ValidationError) as exc_info:
        validate_create(ada_payload)

    assert "email" in violated_fields(exc_info)


def test_multiple_violations_reported_together(ada_payload):
    ada_payload.update({
        "firstName": "",
        "lastName": "x" * 101,
        "status": "expelled",
        "graduationYear": 1999,
        "enrollmentDate": "first of september",
    })

    with pytest.raises(ValidationError) as exc_info:
        validate_create(ada_payload)

    assert violated_fields(exc_info) == {
        "firstName", "lastName", "status", "graduationYear", "enrollmentDate"
    }


@pytest.mark.parametrize("phone", [
    "555-0100",
    "555 010 2030 ext 4",
    "1" * 21,
    "555\t010\t2030",
    "555\n0102030",
    "٥٥٥٠١٠٢٠٣٠",
])
def test_invalid_phone(ada_payload, phone):
    ada_payload["phone"] = phone

    with pytest.raises(ValidationError) as exc_info:
        validate_create(ada_payload)

    assert violated_fields(exc_info) == {"phone"}


@pytest.mark.parametrize("status", ["active", "inactive", "graduated", "suspended"])
def test_every_status_accepted(ada_payload, status):
    ada_payload["status"] = status

    assert validate_create(ada_payload).status == status


@pytest.mark.parametrize("year,ok", [(1999, False), (2000, True), (2100, True), (2101, False)])
def test_graduation_year_bounds(ada_payload, year, ok):
    ada_payload["graduationYear"] = year

    if ok:
        assert validate_create(ada_payload).graduation_year == year
    else:
        with pytest.raises(ValidationError):
            validate_create(ada_payload)


@pytest.mark.parametrize("year", ["2028", 2028.0, True])
def test_graduation_year_must_be_an_integer(ada_payload, year):
    ada_payload["graduationYear"] = year

    with pytest.raises(ValidationError) as exc_info:
        validate_create(ada_payload)

    assert violated_fields(exc_info) == {"graduationYear"}


def test_snake_case_keys_are_not_field_names(ada_payload):
    payload = {
        "first_name": ada_payload.pop("firstName"),
        "last_name": ada_payload.pop("lastName"),
        "enrollment_date": ada_payload.pop("enrollmentDate"),
        **ada_payload,
    }

    with pytest.raises(ValidationError) as exc_info:
        validate_create(payload)

    assert violated_fields(exc_info) == {"firstName", "lastName", "enrollmentDate"}


@pytest.mark.parametrize("payload", [None, [], "student", 42])
def test_non_object_payload(payload):
    with pytest.raises(ValidationError) as exc_info:
        validate_create(payload)

    assert violated_fields(exc_info) == {"body"}


def test_unknown_keys_ignored(ada_payload):
    ada_payload["id"] = 99
    ada_payload["nickname"] = "Countess"

    student = validate_create(ada_payload)

    assert "nickname" not in student.model_dump(by_alias=True)


class TestPartialUpdate:

    def test_empty_payload_is_valid(self):
        changes = validate_partial_update({})

        assert changes.model_dump(exclude_unset=True) == {}

    def test_only_supplied_fields_are_set(self):
        changes = validate_partial_update({"status": "graduated", "graduationYear": 2028})

        assert changes.model_dump(by_alias=True, exclude_unset=True) == {
            "status": "graduated", "graduationYear": 2028
        }

    def test_supplied_fields_are_checked(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_partial_update({"email": "nope", "major": ""})

        assert violated_fields(exc_info) == {"email", "major"}

    def test_required_field_cannot_be_nulled(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_partial_update({"firstName": None, "status": None})

        assert violated_fields(exc_info) == {"firstName", "status"}

    def test_optional_fields_can_be_cleared(self):
        changes = validate_partial_update({"phone": None, "graduationYear": None})

        assert changes.model_dump(by_alias=True, exclude_unset=True) == {
            "phone": None, "graduationYear": None
        }

    def test_snake_case_keys_are_ignored(self):
        changes = validate_partial_update({"first_name": "Augusta", "graduation_year": 2030})

        assert changes.model_dump(exclude_unset=True) == {}

    def test_graduation_year_string_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_partial_update({"graduationYear": "2030"})

        assert violated_fields(exc_info) == {"graduationYear"}

    def test_id_is_not_updatable(self):
        changes = validate_partial_update({"id": 7, "major": "Physics"})

        assert changes.model_dump(by_alias=True, exclude_unset=True) == {"major": "Physics"}
