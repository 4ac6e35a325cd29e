import pytest

from bmlquery.state.query_draft import Filter, FilterField, Operation, QueryDraft
from bmlquery.state.query_form import QueryForm
from conftest import DeferredRunner, FakeService


def _fill_adults(builder):
    builder.set_operation("find")
    builder.set_entity("User")
    builder.set_filter_field(0, FilterField.ATTRIBUTE, "age")
    builder.set_filter_field(0, FilterField.CONDITION, "gt")
    builder.set_filter_field(0, FilterField.CONDITION_VALUE, "18")
    builder.add_filter()
    builder.set_filter_field(1, FilterField.ATTRIBUTE, "email")
    builder.set_filter_field(1, FilterField.CONDITION, "eq")
    builder.set_filter_field(1, FilterField.CONDITION_VALUE, "a@b.com")


def test_adults_scenario_end_to_end(service, schema_file, notifications):
    """Build, generate, save, wander off, load back."""
    form = QueryForm(service, notify=notifications)
    form.reload_schema(schema_file)
    form.start()
    assert form.builder.entities == ["ShapeFile", "User"]

    _fill_adults(form.builder)
    form.submit()
    assert form.result is not None
    assert form.result.draft == form.builder.draft
    assert form.save("adults") is True

    saved = form.library.list_saved()
    assert [(e.id, e.name) for e in saved] == [(1, "adults")]

    form.builder.set_entity("ShapeFile")
    form.builder.set_operation("deleteAll")
    form.load(1)

    assert form.builder.draft == QueryDraft(
        operation=Operation.FIND,
        entity="User",
        filters=(Filter("age", "gt", "18"), Filter("email", "eq", "a@b.com")),
    )
    assert form.result_text == service.get_saved(1).query_string
    assert notifications.errors == []


class TestSubmit:
    """Tests for sending the draft to the generator."""

    def test_generator_rejection_is_notified(self, fake_service, notifications):
        form = QueryForm(fake_service, notify=notifications)
        form.start()

        form.submit()

        assert form.result is None
        assert form.generating is False
        assert "Failed to generate query" in notifications.errors[0][2]

    def test_stale_result_is_discarded(self, fake_service, notifications):
        runner = DeferredRunner()
        form = QueryForm(fake_service, runner=runner, notify=notifications)
        form.builder.set_catalog(fake_service.entities)
        _fill_adults(form.builder)

        form.submit()
        form.builder.set_filter_field(0, FilterField.CONDITION_VALUE, "21")
        runner.run_all()

        assert form.result is None
        assert form.generating is False

    def test_newer_submit_wins(self, fake_service, notifications):
        runner = DeferredRunner()
        form = QueryForm(fake_service, runner=runner, notify=notifications)
        form.builder.set_catalog(fake_service.entities)
        _fill_adults(form.builder)

        form.submit()
        form.submit()
        assert form.generating is True
        runner.run_all()

        assert form.result.draft == form.builder.draft
        assert form.generating is False

    def test_save_without_result_is_rejected(self, fake_service, notifications):
        form = QueryForm(fake_service, notify=notifications)

        assert form.save("adults") is False
        assert "create_saved" not in fake_service.calls

    def test_result_listeners(self, fake_service, notifications):
        form = QueryForm(fake_service, notify=notifications)
        form.builder.set_catalog(fake_service.entities)
        _fill_adults(form.builder)
        seen = []
        form.subscribe_result(lambda: seen.append((form.generating, form.result_text)))

        form.submit()

        assert seen[0] == (True, "")
        assert seen[-1][0] is False
        assert seen[-1][1].startswith("#\nfind:")


class TestCatalog:
    """Tests for the entity catalog lifecycle."""

    def test_catalog_failure_leaves_no_entities(self, catalog, notifications):
        fake = FakeService(catalog)
        form = QueryForm(fake, notify=notifications)
        form.refresh_catalog()
        assert form.builder.entities == ["ShapeFile", "User"]

        fake.failing.add("list_entities")
        form.refresh_catalog()

        assert form.builder.entities == []
        assert form.builder.available_attributes == ()
        assert notifications.errors[0][1] == "Entities"

    def test_reload_schema_failure(self, fake_service, notifications):
        fake_service.failing.add("load_schema")
        form = QueryForm(fake_service, notify=notifications)

        form.reload_schema("missing.cdm")

        assert "Failed to load schema" in notifications.errors[0][2]

    def test_delete_through_form(self, fake_service, notifications):
        form = QueryForm(fake_service, notify=notifications)
        form.builder.set_catalog(fake_service.entities)
        _fill_adults(form.builder)
        form.submit()
        form.save("adults")

        form.delete(form.library.current_id)

        assert form.library.list_saved() == ()
        assert form.library.current_id is None
        assert form.builder.draft.entity == "User"


@pytest.mark.parametrize("level", ["info", "warning", "error"])
def test_default_notifier_logs(fake_service, caplog, level):
    form = QueryForm(fake_service)
    with caplog.at_level("INFO", logger="bmlquery"):
        form.notify(level, "Title", "message")
    assert "Title: message" in caplog.text
