import time

import pytest

from leapsql.state.base import StateError
from leapsql.state.model_store import ModelStore
from leapsql.state.records import (
    AcceptedValuesConfig,
    Model,
    ModelRun,
    ModelRunStatus,
    ModelTestConfig,
)


@pytest.fixture
def store():
    s = ModelStore()
    s.open(":memory:")
    s.init_schema()
    yield s
    s.close()


def test_register_model_generates_id(store):
    model = Model(
        path="models.staging.stg_users",
        name="stg_users",
        materialized="table",
        content_hash="abc123",
    )
    store.register_model(model)
    assert model.id != ""
    assert model.created_at is not None
    assert store.get_model_by_id(model.id).path == "models.staging.stg_users"


def test_register_model_defaults_materialized(store):
    model = Model(path="models.plain", name="plain", content_hash="h")
    store.register_model(model)
    assert model.materialized == "table"
    assert store.get_model_by_path("models.plain").materialized == "table"


def test_register_model_upsert(store):
    model = Model(
        path="models.staging.stg_users",
        name="stg_users",
        materialized="table",
        content_hash="abc123",
    )
    store.register_model(model)
    first_id = model.id

    model.content_hash = "def456"
    store.register_model(model)

    retrieved = store.get_model_by_path("models.staging.stg_users")
    assert retrieved.content_hash == "def456"
    assert retrieved.id == first_id
    assert len(store.list_models()) == 1


def test_get_model_by_id(store):
    model = Model(
        path="models.staging.stg_orders",
        name="stg_orders",
        materialized="view",
        content_hash="hash123",
    )
    store.register_model(model)
    retrieved = store.get_model_by_id(model.id)
    assert retrieved.name == "stg_orders"
    assert retrieved.materialized == "view"


def test_get_model_by_id_not_found(store):
    with pytest.raises(StateError, match="model not found"):
        store.get_model_by_id("nonexistent-id")


def test_get_model_by_path(store):
    model = Model(
        path="models.marts.revenue",
        name="revenue",
        materialized="incremental",
        unique_key="transaction_id",
        content_hash="xyz789",
    )
    store.register_model(model)
    retrieved = store.get_model_by_path("models.marts.revenue")
    assert retrieved.materialized == "incremental"
    assert retrieved.unique_key == "transaction_id"


def test_get_model_by_path_not_found(store):
    assert store.get_model_by_path("nonexistent.model") is None


def test_update_model_hash(store):
    model = Model(path="models.test", name="test", materialized="table", content_hash="original")
    store.register_model(model)
    store.update_model_hash(model.id, "updated")
    assert store.get_model_by_id(model.id).content_hash == "updated"


def test_update_model_hash_not_found(store):
    with pytest.raises(StateError, match="model not found"):
        store.update_model_hash("missing", "hash")


def test_list_models(store):
    for path, name, content_hash in [
        ("models.c", "c", "3"),
        ("models.a", "a", "1"),
        ("models.b", "b", "2"),
    ]:
        store.register_model(
            Model(path=path, name=name, materialized="table", content_hash=content_hash)
        )
    listed = store.list_models()
    assert [m.path for m in listed] == ["models.a", "models.b", "models.c"]


def test_register_model_with_frontmatter_fields(store):
    model = Model(
        path="models.staging.stg_users",
        name="stg_users",
        materialized="incremental",
        unique_key="user_id",
        content_hash="abc123",
        owner="data-team",
        schema="analytics",
        tags=["pii", "daily"],
        tests=[
            ModelTestConfig(unique=["user_id"]),
            ModelTestConfig(not_null=["user_id", "email"]),
        ],
        meta={"priority": "high", "sla": 24},
    )
    store.register_model(model)

    retrieved = store.get_model_by_path("models.staging.stg_users")
    assert retrieved.owner == "data-team"
    assert retrieved.schema == "analytics"
    assert retrieved.tags == ["pii", "daily"]
    assert len(retrieved.tests) == 2
    assert retrieved.tests[0].unique == ["user_id"]
    assert retrieved.tests[1].not_null == ["user_id", "email"]
    assert retrieved.meta["priority"] == "high"
    assert retrieved.meta["sla"] == 24


def test_register_model_with_empty_optional_fields(store):
    model = Model(path="models.simple", name="simple", materialized="table", content_hash="hash123")
    store.register_model(model)
    retrieved = store.get_model_by_path("models.simple")
    assert retrieved.owner == ""
    assert retrieved.schema == ""
    assert retrieved.tags == []
    assert retrieved.tests == []
    assert retrieved.meta == {}


def test_register_model_update_frontmatter_fields(store):
    model = Model(
        path="models.update_test",
        name="update_test",
        materialized="table",
        content_hash="hash1",
        owner="team-a",
        tags=["initial"],
    )
    store.register_model(model)

    model.content_hash = "hash2"
    model.owner = "team-b"
    model.schema = "new_schema"
    model.tags = ["updated", "v2"]
    model.tests = [ModelTestConfig(not_null=["id"])]
    model.meta = {"version": 2}
    store.register_model(model)

    retrieved = store.get_model_by_path("models.update_test")
    assert retrieved.owner == "team-b"
    assert retrieved.schema == "new_schema"
    assert retrieved.tags == ["updated", "v2"]
    assert len(retrieved.tests) == 1
    assert retrieved.meta["version"] == 2


def test_get_model_by_id_with_frontmatter_fields(store):
    model = Model(
        path="models.get_by_id_test",
        name="get_by_id_test",
        materialized="view",
        content_hash="hash123",
        owner="analytics",
        schema="reporting",
        tags=["finance"],
        meta={"department": "finance"},
    )
    store.register_model(model)
    retrieved = store.get_model_by_id(model.id)
    assert retrieved.owner == "analytics"
    assert retrieved.schema == "reporting"
    assert retrieved.tags == ["finance"]
    assert retrieved.meta == {"department": "finance"}


def test_list_models_with_frontmatter_fields(store):
    store.register_model(
        Model(path="models.list_a", name="list_a", materialized="table",
              content_hash="1", owner="team-a", tags=["tag-a"])
    )
    store.register_model(
        Model(path="models.list_b", name="list_b", materialized="table",
              content_hash="2", owner="team-b", tags=["tag-b"])
    )
    listed = store.list_models()
    assert len(listed) == 2
    assert listed[0].owner == "team-a"
    assert listed[0].tags == ["tag-a"]
    assert listed[1].owner == "team-b"


def test_register_model_with_accepted_values(store):
    model = Model(
        path="models.accepted_values_test",
        name="accepted_values_test",
        materialized="table",
        content_hash="hash",
        tests=[
            ModelTestConfig(
                accepted_values=AcceptedValuesConfig(
                    column="status", values=["active", "inactive", "pending"]
                )
            )
        ],
    )
    store.register_model(model)
    retrieved = store.get_model_by_path("models.accepted_values_test")
    assert len(retrieved.tests) == 1
    accepted = retrieved.tests[0].accepted_values
    assert accepted is not None
    assert accepted.column == "status"
    assert accepted.values == ["active", "inactive", "pending"]


def _registered_model(store, path="models.test"):
    model = Model(path=path, name="test", materialized="table", content_hash="hash")
    store.register_model(model)
    return model


def test_record_model_run(store):
    run = store.create_run("test")
    model = _registered_model(store)
    model_run = ModelRun(run_id=run.id, model_id=model.id, status=ModelRunStatus.RUNNING)
    store.record_model_run(model_run)
    assert model_run.id != ""
    runs = store.get_model_runs_for_run(run.id)
    assert [r.id for r in runs] == [model_run.id]
    assert runs[0].status is ModelRunStatus.RUNNING
    assert runs[0].completed_at is None


def test_update_model_run(store):
    run = store.create_run("test")
    model = _registered_model(store)
    model_run = ModelRun(run_id=run.id, model_id=model.id, status=ModelRunStatus.RUNNING)
    store.record_model_run(model_run)

    time.sleep(0.01)
    store.update_model_run(model_run.id, ModelRunStatus.SUCCESS, 100, "")

    runs = store.get_model_runs_for_run(run.id)
    assert len(runs) == 1
    assert runs[0].status is ModelRunStatus.SUCCESS
    assert runs[0].rows_affected == 100
    assert runs[0].execution_ms > 0
    assert runs[0].completed_at is not None
    assert runs[0].error == ""


def test_update_model_run_with_error(store):
    run = store.create_run("test")
    model = _registered_model(store)
    model_run = ModelRun(run_id=run.id, model_id=model.id, status=ModelRunStatus.RUNNING)
    store.record_model_run(model_run)
    store.update_model_run(model_run.id, ModelRunStatus.FAILED, 0, "boom")
    latest = store.get_latest_model_run(model.id)
    assert latest.status is ModelRunStatus.FAILED
    assert latest.error == "boom"


def test_update_model_run_not_found(store):
    with pytest.raises(StateError, match="model run start time"):
        store.update_model_run("missing", ModelRunStatus.SUCCESS, 1, "")


def test_get_latest_model_run(store):
    run1 = store.create_run("test")
    run2 = store.create_run("test")
    model = Model(path="models.test", name="test", content_hash="hash")
    store.register_model(model)

    mr1 = ModelRun(run_id=run1.id, model_id=model.id, status=ModelRunStatus.SUCCESS)
    store.record_model_run(mr1)
    time.sleep(0.01)
    mr2 = ModelRun(run_id=run2.id, model_id=model.id, status=ModelRunStatus.RUNNING)
    store.record_model_run(mr2)

    latest = store.get_latest_model_run(model.id)
    assert latest is not None
    assert latest.id == mr2.id


def test_get_latest_model_run_none(store):
    assert store.get_latest_model_run("no-model") is None


def test_operations_require_open_database():
    unopened = ModelStore()
    with pytest.raises(StateError, match="database not opened"):
        unopened.list_models()