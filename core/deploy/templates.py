from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping

import jinja2

from core.errors import RenderError

logger = logging.getLogger(__name__)


class JinjaRenderer:
    """Rend récursivement tous les fichiers d'un dossier de templates vers `output_dir`.

    Les chemins relatifs sont conservés ; un fichier déjà présent est écrasé,
    ce qui permet de superposer un second jeu de templates au premier.
    """

    def render(self, template_dir: Path, output_dir: Path, context: Mapping[str, Any]) -> None:
        template_dir = Path(template_dir)
        output_dir = Path(output_dir)
        if not template_dir.is_dir():
            raise RenderError(f"Template directory not found: {template_dir}")

        env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(template_dir)),
            undefined=jinja2.StrictUndefined,
            keep_trailing_newline=True,
        )

        for source in sorted(p for p in template_dir.rglob("*") if p.is_file()):
            relative = source.relative_to(template_dir)
            target = output_dir / relative
            try:
                rendered = env.get_template(relative.as_posix()).render(**context)
            except (jinja2.TemplateError, UnicodeDecodeError) as exc:
                raise RenderError(f"Unable to render {source}: {exc}") from exc

            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(rendered, encoding="utf-8")

        logger.info("Templates %s générés dans %s", template_dir, output_dir)
