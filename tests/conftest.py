from __future__ import annotations

from typing import Optional

import pytest

from core.config import Context
from core.deploy.provisioner import Provisioner
from core.models import (
    Action,
    AwsCredentials,
    Cluster,
    DatabaseKind,
    DatabaseOptions,
    Environment,
    ManagedService,
    SelfHosted,
)
from core.services.database import Database

from tests.fakes import Calls, FakeHelm, FakeInfra, FakeKubectl, FakeRenderer, FakeStateStore


@pytest.fixture
def calls() -> Calls:
    return Calls()


@pytest.fixture
def context(tmp_path) -> Context:
    return Context(
        execution_id="exec-1",
        lib_root_dir=tmp_path / "lib",
        workspace_root=tmp_path / "workspaces",
    )


@pytest.fixture
def cluster() -> Cluster:
    return Cluster(id="z123", name="test-cluster", region="eu-west-3", kubeconfig_path="/tmp/kubeconfig")


@pytest.fixture
def environment() -> Environment:
    return Environment(id="env-1", organization_id="org-1", namespace="env-1-ns")


@pytest.fixture
def managed_target(cluster, environment) -> ManagedService:
    return ManagedService(cluster, environment)


@pytest.fixture
def self_hosted_target(cluster, environment) -> SelfHosted:
    return SelfHosted(cluster, environment)


@pytest.fixture
def fakes(calls):
    return {
        "renderer": FakeRenderer(calls),
        "infra": FakeInfra(calls),
        "helm": FakeHelm(calls),
        "kubectl": FakeKubectl(calls),
        "state_store": FakeStateStore(calls),
    }


@pytest.fixture
def provisioner(fakes) -> Provisioner:
    return Provisioner(credentials=AwsCredentials("AKIA", "SECRET"), **fakes)


@pytest.fixture
def make_database(context, provisioner):
    def _make(
        version: str = "8.0",
        managed: bool = False,
        id: str = "abcdef",
        kind: DatabaseKind = DatabaseKind.MYSQL,
        action: Action = Action.CREATE,
        ctx: Optional[Context] = None,
        prov: Optional[Provisioner] = None,
    ) -> Database:
        return Database(
            context=ctx or context,
            kind=kind,
            id=id,
            action=action,
            name="my-db",
            requested_version=version,
            fqdn="my-db.example.com",
            fqdn_id="my-db-abcdef",
            total_cpus="1",
            total_ram_in_mib=512,
            database_instance_type="db.t2.micro",
            options=DatabaseOptions(
                login="admin",
                password="s3cret",
                host="my-db.internal",
                port=3306,
                disk_size_in_gib=10,
            ),
            is_managed_service=managed,
            provisioner=prov or provisioner,
        )

    return _make
