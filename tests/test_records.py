import json

import pytest

from leapsql.state.records import (
    AcceptedValuesConfig,
    ColumnInfo,
    Model,
    ModelRun,
    ModelRunStatus,
    ModelTestConfig,
    RunStatus,
    SourceRef,
)


def test_run_status_parses_stored_values():
    assert RunStatus("completed") is RunStatus.COMPLETED
    assert str(RunStatus.FAILED) == "failed"


def test_run_status_rejects_unknown_value():
    with pytest.raises(ValueError):
        RunStatus("paused")


def test_model_run_status_parses_stored_values():
    assert ModelRunStatus("success") is ModelRunStatus.SUCCESS
    assert str(ModelRunStatus.SKIPPED) == "skipped"


def test_test_config_to_dict_omits_empty_parts():
    assert ModelTestConfig().to_dict() == {}
    assert ModelTestConfig(unique=["user_id"]).to_dict() == {"unique": ["user_id"]}


def test_test_config_to_dict_accepted_values():
    cfg = ModelTestConfig(
        accepted_values=AcceptedValuesConfig(
            column="status", values=["active", "inactive", "pending"]
        )
    )
    assert cfg.to_dict() == {
        "accepted_values": {
            "column": "status",
            "values": ["active", "inactive", "pending"],
        }
    }


@pytest.mark.parametrize(
    "cfg",
    [
        ModelTestConfig(unique=["user_id"]),
        ModelTestConfig(not_null=["user_id", "email"]),
        ModelTestConfig(
            accepted_values=AcceptedValuesConfig(column="status", values=["a", "b"])
        ),
        ModelTestConfig(),
    ],
)
def test_test_config_json_round_trip(cfg):
    restored = ModelTestConfig.from_dict(json.loads(json.dumps(cfg.to_dict())))
    assert restored == cfg


def test_test_config_from_dict_empty_mapping():
    cfg = ModelTestConfig.from_dict({})
    assert cfg.unique == []
    assert cfg.not_null == []
    assert cfg.accepted_values is None


def test_model_defaults_are_independent():
    first = Model(path="models.a", name="a")
    second = Model(path="models.b", name="b")
    first.tags.append("pii")
    first.meta["priority"] = "high"
    assert second.tags == []
    assert second.meta == {}
    assert first.materialized == ""


def test_model_run_defaults():
    run = ModelRun(run_id="r", model_id="m")
    assert run.status is ModelRunStatus.PENDING
    assert run.rows_affected == 0
    assert run.completed_at is None


def test_column_info_sources_compare_by_value():
    col = ColumnInfo(
        name="full_name",
        index=1,
        transform_type="EXPR",
        function="concat",
        sources=[SourceRef("raw_customers", "first_name")],
    )
    assert col.sources == [SourceRef(table="raw_customers", column="first_name")]
    assert len({SourceRef("t", "c"), SourceRef("t", "c")}) == 1