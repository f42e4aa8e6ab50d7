import os
import shutil
import subprocess
import uuid
from pathlib import Path

import pytest

from core.deploy.helm import HelmCli, HelmTimeout
from core.deploy.kubectl import KubectlCli
from core.deploy.templates import JinjaRenderer

KUBECONFIG = os.environ.get("ENGINE_KUBECONFIG")

CHART_YAML = """apiVersion: v2
name: {{ database_name }}
version: 0.1.0
appVersion: "{{ version }}"
"""

CONFIGMAP_YAML = """apiVersion: v1
kind: ConfigMap
metadata:
  name: {{ database_name }}-config
data:
  version: "{{ version }}"
"""


@pytest.mark.integration
@pytest.mark.skipif(shutil.which("helm") is None, reason="helm requis pour ce test")
@pytest.mark.skipif(shutil.which("kubectl") is None, reason="kubectl requis pour ce test")
@pytest.mark.skipif(not KUBECONFIG, reason="ENGINE_KUBECONFIG requis pour ce test")
def test_helm_release_on_real_cluster(tmp_path):
    templates = tmp_path / "chart"
    (templates / "templates").mkdir(parents=True)
    (templates / "Chart.yaml").write_text(CHART_YAML, encoding="utf-8")
    (templates / "templates" / "configmap.yaml").write_text(CONFIGMAP_YAML, encoding="utf-8")

    workspace = tmp_path / "workspace"
    JinjaRenderer().render(templates, workspace, {"database_name": "it-db", "version": "8.0.21"})

    namespace = f"engine-it-{uuid.uuid4().hex[:8]}"
    release = "it-db"
    kubectl = KubectlCli()
    helm = HelmCli()

    kubectl.create_namespace(KUBECONFIG, namespace, {"ttl": "600"}, [])
    try:
        row = helm.upgrade_with_history(KUBECONFIG, namespace, release, Path(workspace), HelmTimeout(120), [])
        assert row is not None
        assert row.is_successfully_deployed()
        assert row.app_version == "8.0.21"
    finally:
        helm.cleanup(KUBECONFIG, namespace, release)
        subprocess.run(
            ["kubectl", "--kubeconfig", KUBECONFIG, "delete", "namespace", namespace, "--wait=false"],
            check=False,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
