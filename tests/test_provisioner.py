import pytest

from core.config import Context
from core.deploy.helm import HelmHistoryRow
from core.deploy.provisioner import Provisioner
from core.errors import EngineError, EngineErrorCause
from core.models import AwsCredentials

from tests.fakes import FakeHelm, FakeInfra, FakeKubectl, FakeRenderer, FakeStateStore


def _provisioner(calls, **overrides):
    parts = {
        "renderer": FakeRenderer(calls),
        "infra": FakeInfra(calls),
        "helm": FakeHelm(calls),
        "kubectl": FakeKubectl(calls),
        "state_store": FakeStateStore(calls),
    }
    parts.update(overrides)
    return Provisioner(credentials=AwsCredentials("AKIA", "SECRET"), **parts)


def test_managed_create_renders_then_applies(make_database, managed_target, calls, context):
    database = make_database("8.0", managed=True)
    database.provisioner.create(database, managed_target)

    workspace = str(database.workspace_directory())
    lib = context.lib_root_dir
    assert calls == [
        ("render", str(lib / "aws/services/common"), workspace),
        ("render", str(lib / "aws/services/mysql"), workspace),
        ("render", str(lib / "aws/charts/external-name-svc"), f"{workspace}/external-name-svc"),
        ("render", str(lib / "aws/charts/external-name-svc"), workspace),
        ("terraform_apply", workspace, False),
    ]


def test_managed_create_dry_run(make_database, managed_target, calls, tmp_path):
    ctx = Context(execution_id="exec-dry", lib_root_dir=tmp_path, workspace_root=tmp_path, dry_run_deploy=True)
    database = make_database("8.0", managed=True, ctx=ctx)
    database.provisioner.create(database, managed_target)
    assert calls[-1][0] == "terraform_apply"
    assert calls[-1][2] is True


def test_managed_context_map(make_database, managed_target, fakes):
    database = make_database("5.7", managed=True)
    database.provisioner.create(database, managed_target)

    rendered = fakes["renderer"].contexts[0]
    assert rendered["namespace"] == "env-1-ns"
    assert rendered["aws_access_key"] == "AKIA"
    assert rendered["aws_secret_key"] == "SECRET"
    assert rendered["eks_cluster_id"] == "z123"
    assert rendered["database_port"] == 3306
    assert rendered["database_id"] == "abcdef"
    assert rendered["version"] == "5.7.31"
    assert rendered["tfstate_name"] == "tfstate-default-abcdef"
    assert rendered["tfstate_suffix_name"] == "abcdef"
    assert rendered["delete_automated_backups"] is False
    assert "resource_expiration_in_seconds" not in rendered


def test_managed_delete_destroys_and_removes_state(make_database, managed_target, calls):
    database = make_database("8", managed=True)
    database.provisioner.delete(database, managed_target)

    assert [c[0] for c in calls] == ["render"] * 4 + ["terraform_destroy", "delete_tfstate_secret"]
    assert calls[-1] == ("delete_tfstate_secret", "tfstate-default-abcdef")


def test_managed_delete_failure_keeps_state(make_database, managed_target, calls):
    database = make_database("8", managed=True, prov=_provisioner(calls, infra=FakeInfra(calls, fail=True)))

    with pytest.raises(EngineError) as exc:
        database.provisioner.delete(database, managed_target)

    assert exc.value.cause == EngineErrorCause.INTERNAL
    assert exc.value.message.startswith("Error while destroying infrastructure")
    assert "destroy failed" in exc.value.message
    assert all(c[0] != "delete_tfstate_secret" for c in calls)


def test_self_hosted_create_sequence(make_database, self_hosted_target, calls, context):
    database = make_database("8.0")
    database.provisioner.create(database, self_hosted_target)

    workspace = str(database.workspace_directory())
    lib = context.lib_root_dir
    assert calls == [
        ("render", str(lib / "common/services/mysql"), workspace),
        ("render", str(lib / "common/chart_values/mysql"), workspace),
        ("create_namespace", "env-1-ns"),
        ("helm_upgrade", "env-1-ns", "mysql-abcdef", workspace),
        ("wait_pod_ready", "env-1-ns", "app=my-db"),
    ]


def test_self_hosted_passes_credentials_and_ttl(make_database, self_hosted_target, calls, tmp_path):
    ctx = Context(
        execution_id="exec-ttl", lib_root_dir=tmp_path, workspace_root=tmp_path, resource_expiration_in_seconds=3600
    )
    helm = FakeHelm(calls)
    kubectl = FakeKubectl(calls)
    database = make_database("8.0", ctx=ctx, prov=_provisioner(calls, helm=helm, kubectl=kubectl))

    database.provisioner.create(database, self_hosted_target)

    assert kubectl.labels == {"ttl": "3600"}
    assert helm.envs == [("AWS_ACCESS_KEY_ID", "AKIA"), ("AWS_SECRET_ACCESS_KEY", "SECRET")]


def test_self_hosted_namespace_without_ttl(make_database, self_hosted_target, calls):
    kubectl = FakeKubectl(calls)
    database = make_database("8.0", prov=_provisioner(calls, kubectl=kubectl))
    database.provisioner.create(database, self_hosted_target)
    assert kubectl.labels is None


@pytest.mark.parametrize("row", [None, HelmHistoryRow(2, "failed", "mysql-8.0.21")])
def test_self_hosted_unsuccessful_history_skips_pod_wait(make_database, self_hosted_target, calls, row):
    database = make_database("8.0", prov=_provisioner(calls, helm=FakeHelm(calls, row=row)))

    with pytest.raises(EngineError) as exc:
        database.provisioner.create(database, self_hosted_target)

    assert exc.value.cause == EngineErrorCause.INTERNAL
    assert "fails to be deployed (before start)" in exc.value.message
    assert exc.value.message == "MySQL database fails to be deployed (before start)"
    assert all(c[0] != "wait_pod_ready" for c in calls)


@pytest.mark.parametrize("ready", [False, None])
def test_self_hosted_pods_not_ready(make_database, self_hosted_target, calls, ready):
    database = make_database("8.0", prov=_provisioner(calls, kubectl=FakeKubectl(calls, ready=ready)))

    with pytest.raises(EngineError) as exc:
        database.provisioner.create(database, self_hosted_target)

    assert exc.value.cause == EngineErrorCause.INTERNAL
    assert exc.value.message == "MySQL database my-db with id abcdef failed to start after several retries"


def test_render_failure_aborts_sequence(make_database, self_hosted_target, calls):
    renderer = FakeRenderer(calls, fail_on="chart_values/mysql")
    database = make_database("8.0", prov=_provisioner(calls, renderer=renderer))

    with pytest.raises(EngineError) as exc:
        database.provisioner.create(database, self_hosted_target)

    assert exc.value.cause == EngineErrorCause.INTERNAL
    assert exc.value.scope.id == "abcdef"
    assert exc.value.execution_id == "exec-1"
    assert [c[0] for c in calls] == ["render"]


def test_self_hosted_delete_uses_helm_cleanup(make_database, self_hosted_target, calls):
    database = make_database("8.0")
    database.provisioner.delete(database, self_hosted_target)
    assert calls == [("helm_cleanup", "env-1-ns", "mysql-abcdef")]


def test_release_name_is_truncated_after_concatenation(make_database):
    long_id = "x" * 60
    database = make_database("8.0", id=long_id)
    name = database.helm_release_name()
    assert len(name) == 50
    assert name == ("mysql-" + long_id)[:50]


@pytest.mark.parametrize("length", [1, 10, 44, 45, 200])
def test_release_name_never_exceeds_50(make_database, length):
    assert len(make_database("8.0", id="a" * length).helm_release_name()) <= 50


@pytest.mark.parametrize("operation", ["create", "delete"])
def test_unknown_target_is_an_internal_engine_error(make_database, calls, operation):
    database = make_database("8.0")

    with pytest.raises(EngineError) as exc:
        getattr(database.provisioner, operation)(database, object())

    assert exc.value.cause == EngineErrorCause.INTERNAL
    assert exc.value.message == "Unknown deployment target: object"
    assert exc.value.execution_id == "exec-1"
    assert calls == []
