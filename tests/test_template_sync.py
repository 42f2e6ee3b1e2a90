import logging
import sqlite3

import pytest

from conftest import sample_template
from db.database import transaction
from db.seed import seed_default_templates
from models.template import TemplateSubmission
from utils import sync
from utils.errors import Forbidden, NotFound, StorageError, ValidationError
from utils.templates import (
    create_template,
    delete_template,
    get_template,
    reorder_phase,
    update_template,
)


def _submit(data: dict) -> TemplateSubmission:
    return TemplateSubmission.model_validate(data)


def _count(conn, table: str) -> int:
    return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]


def _strip_timestamps(template: dict) -> dict:
    return {key: value for key, value in template.items() if key not in ("createdAt", "updatedAt")}


def test_create_returns_full_tree_with_dense_sequences(conn, editor):
    created = create_template(conn, _submit(sample_template()), editor)

    assert created["isDefault"] is False
    assert created["isActive"] is True
    assert created["createdBy"] == editor.user_id
    option = created["options"][0]
    assert [phase["title"] for phase in option["phases"]] == ["Read", "Reflect"]
    assert [phase["sequenceNumber"] for phase in option["phases"]] == [1, 2]
    reflect = option["phases"][1]
    assert reflect["aiContentGeneration"]["basePrompt"] == "Summarise the chapter."
    assert [metric["sequenceNumber"] for metric in reflect["metrics"]] == [1, 2]
    assert reflect["metrics"][0]["defaultValue"] == 3
    assert reflect["metrics"][1]["defaultValue"] is None


def test_resubmitting_fetched_tree_changes_nothing(conn, editor):
    created = create_template(conn, _submit(sample_template()), editor)
    counts = {table: _count(conn, table) for table in ("learning_options", "learning_phases", "phase_metrics")}

    submission = _submit(created)
    with transaction(conn):
        stats = sync.sync_options(conn, created["id"], submission.options)
    assert stats.inserted == {}
    assert stats.deleted == {}
    assert stats.updated == {"option": 1, "phase": 2, "metric": 4}
    assert not stats.changed

    updated = update_template(conn, created["id"], _submit(created), editor)
    assert _strip_timestamps(updated) == _strip_timestamps(created)
    assert counts == {table: _count(conn, table) for table in counts}


def test_omitted_option_is_deleted_with_descendants(conn, editor):
    created = create_template(conn, _submit(sample_template()), editor)
    option_id = created["options"][0]["id"]
    phase_ids = [phase["id"] for phase in created["options"][0]["phases"]]

    payload = dict(created, options=[])
    updated = update_template(conn, created["id"], _submit(payload), editor)

    assert updated["options"] == []
    assert conn.execute("SELECT 1 FROM learning_options WHERE id = ?", (option_id,)).fetchone() is None
    placeholders = ",".join("?" for _ in phase_ids)
    assert conn.execute(
        f"SELECT COUNT(*) FROM learning_phases WHERE id IN ({placeholders})", phase_ids
    ).fetchone()[0] == 0
    assert _count(conn, "phase_metrics") == 0


def test_omitted_option_list_keeps_children(conn, editor):
    created = create_template(conn, _submit(sample_template()), editor)
    payload = {key: value for key, value in created.items() if key != "options"}
    payload["name"] = "Renamed"

    updated = update_template(conn, created["id"], _submit(payload), editor)

    assert updated["name"] == "Renamed"
    assert updated["options"] == created["options"]


def test_phases_without_sequence_numbers_are_numbered_in_submission_order(conn, editor):
    created = create_template(conn, _submit(sample_template()), editor)
    option = created["options"][0]
    payload = dict(created)
    payload["options"] = [
        dict(option, phases=[{"title": "A"}, {"title": "B"}, {"title": "C"}])
    ]

    updated = update_template(conn, created["id"], _submit(payload), editor)

    phases = updated["options"][0]["phases"]
    assert [(phase["title"], phase["sequenceNumber"]) for phase in phases] == [("A", 1), ("B", 2), ("C", 3)]
    assert phases[0]["icon"] == "brain"
    assert phases[0]["color"] == "rgba(98, 102, 241, 1)"
    assert phases[0]["backgroundColor"] == "rgba(98, 102, 241, 0.1)"


def test_explicit_sequence_numbers_order_siblings_and_are_densified(conn, editor):
    created = create_template(conn, _submit(sample_template()), editor)
    option = created["options"][0]
    payload = dict(created)
    payload["options"] = [
        dict(
            option,
            phases=[
                {"title": "Third", "sequenceNumber": 30},
                {"title": "First", "sequenceNumber": 10},
                {"title": "Second", "sequenceNumber": 20},
            ],
        )
    ]

    updated = update_template(conn, created["id"], _submit(payload), editor)

    phases = updated["options"][0]["phases"]
    assert [(phase["title"], phase["sequenceNumber"]) for phase in phases] == [
        ("First", 1),
        ("Second", 2),
        ("Third", 3),
    ]


def test_mixed_update_insert_and_delete(conn, editor):
    created = create_template(conn, _submit(sample_template()), editor)
    option = created["options"][0]
    read, reflect = option["phases"]
    payload = dict(created)
    payload["options"] = [
        dict(
            option,
            phases=[
                {"id": "temp-1", "title": "Preview", "metrics": [{"name": "Skim Time", "type": "time"}]},
                dict(read, title="Read Closely", metrics=read["metrics"][:1]),
            ],
        )
    ]

    updated = update_template(conn, created["id"], _submit(payload), editor)

    phases = updated["options"][0]["phases"]
    assert [phase["title"] for phase in phases] == ["Preview", "Read Closely"]
    assert [phase["sequenceNumber"] for phase in phases] == [1, 2]
    assert phases[1]["id"] == read["id"]
    assert phases[0]["id"] not in (read["id"], reflect["id"])
    assert [metric["id"] for metric in phases[1]["metrics"]] == [read["metrics"][0]["id"]]
    assert phases[0]["metrics"][0]["name"] == "Skim Time"
    assert conn.execute("SELECT 1 FROM learning_phases WHERE id = ?", (reflect["id"],)).fetchone() is None


def test_omitted_metric_list_keeps_stored_metrics(conn, editor):
    created = create_template(conn, _submit(sample_template()), editor)
    option = created["options"][0]
    read = option["phases"][0]
    trimmed = {key: value for key, value in read.items() if key != "metrics"}
    payload = dict(created)
    payload["options"] = [dict(option, phases=[trimmed, option["phases"][1]])]

    updated = update_template(conn, created["id"], _submit(payload), editor)

    assert updated["options"][0]["phases"][0]["metrics"] == read["metrics"]


def test_placeholder_id_is_always_a_create(conn, editor):
    created = create_template(conn, _submit(sample_template()), editor)
    option = created["options"][0]
    payload = dict(created)
    payload["options"] = [dict(option, id=f"temp-{option['id']}")]

    updated = update_template(conn, created["id"], _submit(payload), editor)

    assert len(updated["options"]) == 1
    assert updated["options"][0]["id"] != option["id"]
    assert conn.execute("SELECT 1 FROM learning_options WHERE id = ?", (option["id"],)).fetchone() is None


def test_id_from_another_template_is_treated_as_new(conn, editor):
    first = create_template(conn, _submit(sample_template()), editor)
    second = create_template(conn, _submit(sample_template(name="Other")), editor)
    foreign = first["options"][0]
    payload = dict(second)
    payload["options"] = [dict(foreign, name="Borrowed")]

    updated = update_template(conn, second["id"], _submit(payload), editor)

    assert updated["options"][0]["name"] == "Borrowed"
    assert updated["options"][0]["id"] != foreign["id"]
    assert get_template(conn, first["id"])["options"][0]["name"] == "Two Step"


def test_duplicate_ids_are_rejected_without_changes(conn, editor):
    created = create_template(conn, _submit(sample_template()), editor)
    option = created["options"][0]
    read = option["phases"][0]
    payload = dict(created, name="Changed")
    payload["options"] = [dict(option, phases=[read, dict(read, title="Copy")])]

    with pytest.raises(ValidationError) as excinfo:
        update_template(conn, created["id"], _submit(payload), editor)

    assert excinfo.value.field == "options[0].phases[1].id"
    assert _strip_timestamps(get_template(conn, created["id"])) == _strip_timestamps(created)


def test_update_missing_template_raises_not_found(conn, editor):
    with pytest.raises(NotFound):
        update_template(conn, 999, _submit(sample_template()), editor)


def test_anonymous_callers_cannot_write(conn):
    with pytest.raises(Forbidden):
        create_template(conn, _submit(sample_template()), None)
    assert _count(conn, "learning_templates") == 0


def test_default_template_rejects_non_admin_edits(conn, editor, admin):
    seed_default_templates(conn)
    default_id = conn.execute(
        "SELECT id FROM learning_templates WHERE is_default = 1 ORDER BY id LIMIT 1"
    ).fetchone()[0]
    fetched = get_template(conn, default_id)

    with pytest.raises(Forbidden):
        update_template(conn, default_id, _submit(dict(fetched, name="Hijacked")), editor)
    with pytest.raises(Forbidden):
        delete_template(conn, default_id, editor)
    with pytest.raises(Forbidden):
        delete_template(conn, default_id, admin)

    updated = update_template(conn, default_id, _submit(dict(fetched, name="Renamed", isDefault=False)), admin)
    assert updated["name"] == "Renamed"
    assert updated["isDefault"] is True


def test_delete_cascades_whole_tree(conn, editor):
    created = create_template(conn, _submit(sample_template()), editor)

    assert delete_template(conn, created["id"], editor) == {"success": True}

    with pytest.raises(NotFound):
        get_template(conn, created["id"])
    for table in ("learning_options", "learning_phases", "phase_metrics"):
        assert _count(conn, table) == 0


def test_storage_failure_rolls_back_partial_reconciliation(conn, editor, monkeypatch):
    created = create_template(conn, _submit(sample_template()), editor)
    option = created["options"][0]
    payload = dict(created)
    payload["options"] = [dict(option, phases=[{"title": "Brand new"}])]

    def failing_insert(*args, **kwargs):
        raise sqlite3.OperationalError("disk I/O error")

    monkeypatch.setattr(sync, "insert_row", failing_insert)

    with pytest.raises(StorageError):
        update_template(conn, created["id"], _submit(payload), editor)

    assert _strip_timestamps(get_template(conn, created["id"])) == _strip_timestamps(created)


def test_complexity_levels_only_change_when_submitted(conn, editor):
    levels = {
        "easy": {"name": "Basic", "description": "Recall", "targetAccuracy": 75, "aiPrompt": "Keep it simple."},
    }
    created = create_template(conn, _submit(sample_template(complexityLevels=levels)), editor)
    assert created["complexityLevels"] == levels

    without = {key: value for key, value in created.items() if key != "complexityLevels"}
    assert update_template(conn, created["id"], _submit(without), editor)["complexityLevels"] == levels

    cleared = update_template(conn, created["id"], _submit(dict(created, complexityLevels=None)), editor)
    assert cleared["complexityLevels"] is None


def test_reorder_phase_swaps_neighbours(conn, editor):
    created = create_template(conn, _submit(sample_template()), editor)
    option = created["options"][0]
    read, reflect = option["phases"]

    moved = reorder_phase(conn, option["id"], reflect["id"], "up", editor)
    assert [phase["id"] for phase in moved["phases"]] == [reflect["id"], read["id"]]
    assert [phase["sequenceNumber"] for phase in moved["phases"]] == [1, 2]

    unchanged = reorder_phase(conn, option["id"], reflect["id"], "up", editor)
    assert [phase["id"] for phase in unchanged["phases"]] == [reflect["id"], read["id"]]

    with pytest.raises(NotFound):
        reorder_phase(conn, option["id"], 12345, "down", editor)


def test_sync_logs_structural_changes_at_info(conn, editor, caplog):
    created = create_template(conn, _submit(sample_template()), editor)
    option = created["options"][0]

    with caplog.at_level(logging.DEBUG, logger="utils.sync"):
        with transaction(conn):
            unchanged = sync.sync_options(conn, created["id"], _submit(created).options)
        with transaction(conn):
            changed = sync.sync_options(conn, created["id"], _submit(dict(created, options=[dict(option, phases=[])])).options)

    assert not unchanged.changed
    assert changed.changed
    assert changed.deleted == {"phase": 2}
    levels = [record.levelno for record in caplog.records if record.name == "utils.sync"]
    assert levels == [logging.DEBUG, logging.INFO]
