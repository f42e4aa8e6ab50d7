import pytest

from core.deploy.templates import JinjaRenderer
from core.errors import RenderError


@pytest.fixture
def chart(tmp_path):
    default = tmp_path / "common" / "services" / "mysql"
    (default / "templates").mkdir(parents=True)
    (default / "values.yaml").write_text("image: bitnami/mysql:{{ version }}\nreplicas: 1\n", encoding="utf-8")
    (default / "templates" / "service.yaml").write_text("port: {{ database_port }}\n", encoding="utf-8")

    overlay = tmp_path / "common" / "chart_values" / "mysql"
    overlay.mkdir(parents=True)
    (overlay / "values.yaml").write_text("image: bitnami/mysql:{{ version }}\nreplicas: 2\n", encoding="utf-8")
    return default, overlay


def test_renders_tree_and_overlay_wins(chart, tmp_path):
    default, overlay = chart
    out = tmp_path / "workspace"
    context = {"version": "8.0.21", "database_port": 3306}

    renderer = JinjaRenderer()
    renderer.render(default, out, context)
    renderer.render(overlay, out, context)

    assert (out / "templates" / "service.yaml").read_text(encoding="utf-8") == "port: 3306\n"
    assert (out / "values.yaml").read_text(encoding="utf-8") == "image: bitnami/mysql:8.0.21\nreplicas: 2\n"


def test_missing_variable_is_a_render_error(chart, tmp_path):
    default, _ = chart
    with pytest.raises(RenderError):
        JinjaRenderer().render(default, tmp_path / "out", {"version": "8.0.21"})


def test_missing_directory_is_a_render_error(tmp_path):
    with pytest.raises(RenderError):
        JinjaRenderer().render(tmp_path / "nope", tmp_path / "out", {})
