import pytest

from casedesk.app.domain.errors import CaseValidationError, NotFoundError
from casedesk.app.services import case_service, file_service, folder_service, note_service


def _case_for(db, staff, lawyer):
    return case_service.create_case(
        db,
        {"full_name": "Note Client", "phone_number": "5550100400", "assigned_lawyer_id": staff[lawyer].id},
        staff["manager"],
    )


def test_notes_crud_and_search(sqlite_session, staff):
    case = _case_for(sqlite_session, staff, "l1")
    first = note_service.create_note(sqlite_session, case.id, {"title": "Intake", "content": "Client called"}, staff["l1"])
    note_service.create_note(sqlite_session, case.id, {"title": "Hearing", "content": "Bring witness list"}, staff["l1"])

    found = note_service.list_notes(sqlite_session, case.id, {}, staff["l1"], search="witness")
    assert [note.title for note in found["items"]] == ["Hearing"]

    updated = note_service.update_note(sqlite_session, first.id, {"content": "Client called twice"}, staff["l1"])
    assert updated.title == "Intake"
    assert updated.content == "Client called twice"

    note_service.delete_note(sqlite_session, first.id, staff["l1"])
    with pytest.raises(NotFoundError):
        note_service.get_note(sqlite_session, first.id, staff["l1"])
    assert note_service.list_notes(sqlite_session, case.id, {}, staff["l1"])["total"] == 1


def test_notes_are_scoped_through_their_case(sqlite_session, staff):
    mine = _case_for(sqlite_session, staff, "l1")
    theirs = _case_for(sqlite_session, staff, "l2")
    own_note = note_service.create_note(sqlite_session, mine.id, {"title": "Mine", "content": "x"}, staff["l1"])
    note_service.create_note(sqlite_session, theirs.id, {"title": "Theirs", "content": "y"}, staff["l2"])

    with pytest.raises(NotFoundError):
        note_service.get_note(sqlite_session, own_note.id, staff["l2"])
    with pytest.raises(NotFoundError):
        note_service.create_note(sqlite_session, mine.id, {"title": "Nope", "content": "z"}, staff["l2"])

    l1_all = note_service.list_all_notes(sqlite_session, {}, staff["l1"])
    assert [note.title for note in l1_all["items"]] == ["Mine"]
    manager_all = note_service.list_all_notes(sqlite_session, {}, staff["manager"])
    assert manager_all["total"] == 2


def test_note_requires_title_and_content(sqlite_session, staff):
    case = _case_for(sqlite_session, staff, "l1")
    with pytest.raises(CaseValidationError):
        note_service.create_note(sqlite_session, case.id, {"title": "", "content": "text"}, staff["l1"])


def test_file_records_lifecycle(sqlite_session, staff):
    case = _case_for(sqlite_session, staff, "l1")
    folder = folder_service.create_folder(sqlite_session, case.id, {"name": "Uploads"}, staff["l1"])

    record = file_service.register_file(
        sqlite_session,
        folder.id,
        {"file_name": "passport.jpg", "file_path": "store/passport.jpg", "file_size": 2048, "mime_type": "image/jpeg"},
        staff["l1"],
    )
    assert record.case_id == case.id

    listed = file_service.list_files(sqlite_session, folder.id, {}, staff["l1"])
    assert [row.file_name for row in listed["items"]] == ["passport.jpg"]

    renamed = file_service.update_file(
        sqlite_session, record.id, {"file_name": "passport-front.jpg", "description": "front page"}, staff["l1"]
    )
    assert renamed.file_name == "passport-front.jpg"
    assert renamed.description == "front page"

    with pytest.raises(NotFoundError):
        file_service.get_file(sqlite_session, record.id, staff["l2"])

    file_service.delete_file(sqlite_session, record.id, staff["l1"])
    with pytest.raises(NotFoundError):
        file_service.get_file(sqlite_session, record.id, staff["l1"])
    folder_service.delete_folder(sqlite_session, folder.id, staff["l1"])


def test_file_size_must_not_be_negative(sqlite_session, staff):
    case = _case_for(sqlite_session, staff, "l1")
    folder = folder_service.create_folder(sqlite_session, case.id, {"name": "Uploads"}, staff["l1"])
    with pytest.raises(CaseValidationError):
        file_service.register_file(
            sqlite_session, folder.id, {"file_name": "a", "file_path": "b", "file_size": -1}, staff["l1"]
        )


def test_file_search_and_statistics(sqlite_session, staff):
    case = _case_for(sqlite_session, staff, "l1")
    folder = folder_service.create_folder(sqlite_session, case.id, {"name": "Uploads"}, staff["l1"])
    for name, size, mime in (
        ("lease_2024.pdf", 1000, "application/pdf"),
        ("lease-summary.pdf", 500, "application/pdf"),
        ("site photo.jpg", 250, "image/jpeg"),
    ):
        file_service.register_file(
            sqlite_session,
            folder.id,
            {"file_name": name, "file_path": f"store/{name}", "file_size": size, "mime_type": mime},
            staff["l1"],
        )

    leases = file_service.search_files(sqlite_session, folder.id, "lease", {}, staff["l1"])
    assert leases["total"] == 2
    underscore = file_service.search_files(sqlite_session, folder.id, "_", {}, staff["l1"])
    assert [row.file_name for row in underscore["items"]] == ["lease_2024.pdf"]

    stats = file_service.file_statistics(sqlite_session, folder.id, staff["l1"])
    assert stats["total_files"] == 3
    assert stats["total_size"] == 1750
    assert stats["by_type"] == [
        {"mime_type": "application/pdf", "count": 2},
        {"mime_type": "image/jpeg", "count": 1},
    ]

    with pytest.raises(NotFoundError):
        file_service.file_statistics(sqlite_session, folder.id, staff["l2"])


def test_file_statistics_for_empty_folder(sqlite_session, staff):
    case = _case_for(sqlite_session, staff, "l1")
    folder = folder_service.create_folder(sqlite_session, case.id, {"name": "Empty"}, staff["l1"])
    assert file_service.file_statistics(sqlite_session, folder.id, staff["manager"]) == {
        "total_files": 0,
        "by_type": [],
        "total_size": 0,
    }


def test_note_and_folder_search_treat_wildcards_literally(sqlite_session, staff):
    case = _case_for(sqlite_session, staff, "l1")
    note_service.create_note(sqlite_session, case.id, {"title": "Fees", "content": "Paid 100%"}, staff["l1"])
    note_service.create_note(sqlite_session, case.id, {"title": "Call", "content": "No answer"}, staff["l1"])

    percent = note_service.list_notes(sqlite_session, case.id, {}, staff["l1"], search="%")
    assert [note.title for note in percent["items"]] == ["Fees"]
    assert note_service.list_notes(sqlite_session, case.id, {}, staff["l1"], search="_")["total"] == 0

    assert folder_service.search_folders(sqlite_session, case.id, "%", {}, staff["l1"])["total"] == 0
