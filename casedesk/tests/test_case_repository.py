import re
from datetime import timedelta, timezone

import pytest

from casedesk.app.domain.access_policy import UNRESTRICTED, CaseScope
from casedesk.app.domain.contracts import CaseCreate, CaseFilters, Pagination
from casedesk.app.domain.errors import CaseValidationError, DuplicateCaseNumberError, NotFoundError
from casedesk.app.services import case_repository

TEMP_NUMBER_RE = re.compile(r"^TEMP-[0-9A-Z]+-[0-9A-Z]{8}$")


def _create(db, created_by="creator", **fields):
    data = {"full_name": "Jane Client", "phone_number": "5550100200"}
    data.update(fields)
    case = case_repository.create(db, CaseCreate(**data), created_by=created_by)
    db.commit()
    return case


def test_temp_case_number_shape():
    number = case_repository.generate_temp_case_number()
    assert TEMP_NUMBER_RE.match(number)
    assert number == number.upper()


def test_temp_case_number_encodes_timestamp_in_base36():
    number = case_repository.generate_temp_case_number(now_ms=36 ** 3 + 35)
    assert number.startswith("TEMP-100Z-")


def test_temp_case_numbers_differ_within_same_millisecond():
    first = case_repository.generate_temp_case_number(now_ms=1_700_000_000_000)
    second = case_repository.generate_temp_case_number(now_ms=1_700_000_000_000)
    assert first != second


def test_temp_case_numbers_unique_over_many_generations():
    numbers = {case_repository.generate_temp_case_number() for _ in range(10_000)}
    assert len(numbers) == 10_000


def test_create_synthesizes_case_number_when_missing(sqlite_session):
    case = _create(sqlite_session)
    assert TEMP_NUMBER_RE.match(case.case_number)
    assert case.status == "Pending"
    assert case.created_by == "creator"


def test_create_rejects_duplicate_case_number(sqlite_session):
    _create(sqlite_session, case_number="CN-100")
    with pytest.raises(DuplicateCaseNumberError):
        _create(sqlite_session, case_number="CN-100")


def test_unique_constraint_backs_up_the_precheck(sqlite_session, monkeypatch):
    _create(sqlite_session, case_number="CN-200")
    monkeypatch.setattr(case_repository, "case_number_exists", lambda *args, **kwargs: False)

    with pytest.raises(DuplicateCaseNumberError):
        case_repository.create(
            sqlite_session,
            CaseCreate(full_name="Other Client", phone_number="5550100201", case_number="CN-200"),
            created_by="creator",
        )
    sqlite_session.rollback()


def test_find_by_id_hides_out_of_scope_cases(sqlite_session):
    case = _create(sqlite_session)
    assert case_repository.find_by_id(sqlite_session, case.id, UNRESTRICTED).id == case.id

    with pytest.raises(NotFoundError):
        case_repository.find_by_id(sqlite_session, case.id, CaseScope(lawyer_id="someone-else"))
    with pytest.raises(NotFoundError):
        case_repository.find_by_id(sqlite_session, "missing", UNRESTRICTED)


def test_list_pagination_totals(sqlite_session):
    for idx in range(25):
        _create(sqlite_session, full_name=f"Client {idx:02d}", case_number=f"PG-{idx:02d}")

    page = case_repository.list_cases(
        sqlite_session, UNRESTRICTED, CaseFilters(), Pagination(page=2, limit=10)
    )
    assert len(page["items"]) == 10
    assert page["total"] == 25
    assert page["total_pages"] == 3
    assert page["page"] == 2

    last = case_repository.list_cases(
        sqlite_session, UNRESTRICTED, CaseFilters(), Pagination(page=3, limit=10)
    )
    assert len(last["items"]) == 5


def test_list_sorting_and_unknown_sort_field(sqlite_session):
    for name in ("Charlie", "Alpha", "Bravo"):
        _create(sqlite_session, full_name=name)

    page = case_repository.list_cases(
        sqlite_session,
        UNRESTRICTED,
        CaseFilters(),
        Pagination(sort_by="full_name", sort_order="asc"),
    )
    assert [case.full_name for case in page["items"]] == ["Alpha", "Bravo", "Charlie"]

    with pytest.raises(CaseValidationError):
        case_repository.list_cases(
            sqlite_session, UNRESTRICTED, CaseFilters(), Pagination(sort_by="phone_number")
        )


def test_list_filters_and_search(sqlite_session, make_user):
    lawyer = make_user("LAWYER", "Grace Hopper")
    _create(sqlite_session, full_name="Ada Client", case_number="ALPHA-1", assigned_lawyer_id=lawyer.id)
    _create(sqlite_session, full_name="Bob Client", case_number="BETA-1", status="Closed")

    by_status = case_repository.list_cases(
        sqlite_session, UNRESTRICTED, CaseFilters(status="Closed"), Pagination()
    )
    assert [case.full_name for case in by_status["items"]] == ["Bob Client"]

    by_lawyer_name = case_repository.list_cases(
        sqlite_session, UNRESTRICTED, CaseFilters(search="hopper"), Pagination()
    )
    assert [case.full_name for case in by_lawyer_name["items"]] == ["Ada Client"]
    assert by_lawyer_name["total"] == 1

    by_number = case_repository.list_cases(
        sqlite_session, UNRESTRICTED, CaseFilters(case_number="beta"), Pagination()
    )
    assert [case.case_number for case in by_number["items"]] == ["BETA-1"]

    scoped = case_repository.list_cases(
        sqlite_session, CaseScope(lawyer_id=lawyer.id), CaseFilters(), Pagination()
    )
    assert scoped["total"] == 1


def test_empty_scope_lists_nothing(sqlite_session):
    _create(sqlite_session)
    page = case_repository.list_cases(sqlite_session, CaseScope(), CaseFilters(), Pagination())
    assert page["items"] == []
    assert page["total"] == 0
    assert page["total_pages"] == 0


def test_update_rechecks_case_number(sqlite_session):
    _create(sqlite_session, case_number="UP-1")
    second = _create(sqlite_session, case_number="UP-2")

    with pytest.raises(DuplicateCaseNumberError):
        case_repository.update(sqlite_session, second.id, {"case_number": "UP-1"}, UNRESTRICTED)

    updated = case_repository.update(sqlite_session, second.id, {"case_number": "UP-2", "court": "High Court"}, UNRESTRICTED)
    sqlite_session.commit()
    assert updated.court == "High Court"


def test_update_rejects_unknown_fields(sqlite_session):
    case = _create(sqlite_session)
    with pytest.raises(CaseValidationError):
        case_repository.update(sqlite_session, case.id, {"created_by": "intruder"}, UNRESTRICTED)


def test_delete_missing_case_is_not_found(sqlite_session):
    with pytest.raises(NotFoundError):
        case_repository.delete_case(sqlite_session, "missing")


def test_start_date_with_utc_offset_is_compared_in_utc(sqlite_session):
    case = _create(sqlite_session)
    eastern = timezone(timedelta(hours=-5))
    created_utc = case.created_at.replace(tzinfo=timezone.utc)

    after = (created_utc + timedelta(hours=1)).astimezone(eastern)
    page = case_repository.list_cases(sqlite_session, UNRESTRICTED, CaseFilters(start_date=after), Pagination())
    assert page["total"] == 0

    before = (created_utc - timedelta(hours=1)).astimezone(eastern)
    page = case_repository.list_cases(sqlite_session, UNRESTRICTED, CaseFilters(start_date=before), Pagination())
    assert page["total"] == 1


def test_like_wildcards_in_search_terms_match_literally(sqlite_session):
    _create(sqlite_session, full_name="Plain Client", case_number="WC-1")
    _create(sqlite_session, full_name="Other Client", case_number="WC-2")

    for term in ("%", "_", "Client%"):
        page = case_repository.list_cases(sqlite_session, UNRESTRICTED, CaseFilters(search=term), Pagination())
        assert page["total"] == 0, term
    page = case_repository.list_cases(sqlite_session, UNRESTRICTED, CaseFilters(case_number="_"), Pagination())
    assert page["total"] == 0

    _create(sqlite_session, full_name="Discount 50% Client", case_number="WC_3")
    percent = case_repository.list_cases(sqlite_session, UNRESTRICTED, CaseFilters(search="50%"), Pagination())
    assert [case.case_number for case in percent["items"]] == ["WC_3"]
    underscore = case_repository.list_cases(sqlite_session, UNRESTRICTED, CaseFilters(case_number="c_3"), Pagination())
    assert underscore["total"] == 1
