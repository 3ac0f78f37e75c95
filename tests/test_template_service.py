import pytest
from sqlalchemy.exc import IntegrityError

from models.templates import ResultTemplate
from services import template_service
from services.exceptions import AccessDeniedError, DuplicateTemplateError, NotFoundError, ValidationError
from conftest import SESSION, TERM


def test_create_fills_default_components(db, seed):
    template = template_service.create(db, seed.admin, TERM, SESSION)

    assert template.is_active is True
    assert template.name == f"{TERM} {SESSION} Result Template"
    assert template.created_by == seed.admin.user_id
    columns = template.components["scoresTable"]["columns"]
    assert [c["key"] for c in columns] == ["ca1", "ca2", "exam", "total", "grade"]
    assert template.components["signatures"]["enabled"] is False
    assert len(template.components["affectiveTraits"]["traits"]) == 6
    assert [f["key"] for f in template.components["fees"]["types"]][0] == "tuition"


def test_create_generates_stable_keys_for_custom_columns(db, seed):
    components = {
        "scoresTable": {
            "columns": [
                {"name": "Test", "maxScore": 30},
                {"name": "Exam", "maxScore": 70},
                {"name": "Total", "maxScore": 100, "calculated": True, "editable": True},
            ]
        }
    }
    template = template_service.create(db, seed.admin, TERM, SESSION, components, name="Custom")

    columns = template.components["scoresTable"]["columns"]
    keys = [c["key"] for c in columns]
    assert all(keys) and len(set(keys)) == 3
    # calculated columns are never editable
    assert columns[2]["editable"] is False

    fetched = template_service.get_template(db, seed.teacher, template.id)
    assert [c["key"] for c in fetched.components["scoresTable"]["columns"]] == keys


def test_create_rejects_second_active_template(db, seed, template):
    with pytest.raises(DuplicateTemplateError):
        template_service.create(db, seed.admin, TERM, SESSION)


def test_same_term_allowed_in_other_school(db, seed, template):
    other = template_service.create(db, seed.foreign_admin, TERM, SESSION)
    assert other.school_id == seed.other_school.id


def test_create_requires_admin(db, seed):
    with pytest.raises(AccessDeniedError):
        template_service.create(db, seed.teacher, TERM, SESSION)


def test_create_rejects_invalid_components(db, seed):
    with pytest.raises(ValidationError):
        template_service.create(db, seed.admin, TERM, SESSION, {"letterhead": {"enabled": True}})

    with pytest.raises(ValidationError):
        template_service.create(db, seed.admin, TERM, SESSION, {
            "scoresTable": {"columns": [{"name": "Total", "maxScore": 100, "calculated": True}]}
        })

    with pytest.raises(ValidationError):
        template_service.create(db, seed.admin, TERM, SESSION, {
            "scoresTable": {"columns": [{"key": "ca", "name": "CA1"}, {"key": "ca", "name": "CA2"}]}
        })


def test_store_enforces_one_active_template_per_slot(db, seed):
    def row(active):
        t = ResultTemplate(school_id=seed.school.id, name="t", term=TERM, session=SESSION,
                           components={}, created_by=1)
        t.set_active(active)
        return t

    db.add_all([row(False), row(False), row(True)])
    db.commit()

    db.add(row(True))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()


def test_get_active_template(db, seed, template):
    assert template_service.get_active_template(db, seed.teacher, TERM, SESSION).id == template.id

    with pytest.raises(NotFoundError, match="Please contact admin"):
        template_service.get_active_template(db, seed.teacher, "Second Term", SESSION)


def test_templates_are_scoped_to_school(db, seed, template):
    with pytest.raises(NotFoundError):
        template_service.get_template(db, seed.foreign_admin, template.id)
    assert template_service.list_templates(db, seed.foreign_admin) == []
    assert [t.id for t in template_service.list_templates(db, seed.admin)] == [template.id]


def test_update_merges_sections(db, seed, template):
    updated = template_service.update(db, seed.admin, template.id, {
        "name": "Renamed",
        "components": {"fees": {"enabled": False}, "comments": {"principal": False}},
    })

    assert updated.name == "Renamed"
    assert updated.components["fees"]["enabled"] is False
    # untouched keys in a patched section survive
    assert len(updated.components["fees"]["types"]) == 5
    assert updated.components["comments"] == {"enabled": True, "teacher": True, "principal": False}
    assert updated.components["header"]["enabled"] is True


def test_update_rejects_unknown_section(db, seed, template):
    with pytest.raises(ValidationError, match="letterhead"):
        template_service.update(db, seed.admin, template.id, {"components": {"letterhead": {"enabled": True}}})


def test_duplicate_copies_components(db, seed, template):
    copy = template_service.duplicate(db, seed.admin, template.id, "Second Term", SESSION)

    assert copy.id != template.id
    assert copy.name == f"{template.name} (Copy)"
    assert copy.term == "Second Term"
    assert copy.is_active is True
    assert copy.components == template.components


def test_duplicate_into_taken_slot_fails(db, seed, template):
    with pytest.raises(DuplicateTemplateError):
        template_service.duplicate(db, seed.admin, template.id, TERM, SESSION, "Again")


def test_deactivate_then_delete(db, seed, template):
    assert template_service.deactivate(db, seed.admin, template.id) == {"deactivated": True}
    db.refresh(template)
    assert template.is_active is False
    assert template.active_slot is None

    # the slot is free again
    replacement = template_service.create(db, seed.admin, TERM, SESSION)
    assert replacement.is_active is True

    assert template_service.deactivate(db, seed.admin, template.id) == {"deleted": True}
    with pytest.raises(NotFoundError):
        template_service.get_template(db, seed.admin, template.id)


def test_inactive_row_leaves_slot_free(db, seed):
    archived = ResultTemplate(school_id=seed.school.id, name="Archived", term=TERM, session=SESSION,
                              components={}, created_by=1)
    archived.set_active(False)
    db.add(archived)
    db.commit()
    db.refresh(archived)
    assert archived.active_slot is None

    template = template_service.create(db, seed.admin, TERM, SESSION)
    assert template.active_slot == 1
