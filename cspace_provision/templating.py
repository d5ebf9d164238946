import logging
from pathlib import Path

import jinja2

from cspace_provision.config import StageTemplate
from cspace_provision.error import ProvisionFileError, RenderError

log = logging.getLogger(__name__)


def jinja2_env(**kwargs) -> jinja2.Environment:
    """Creates a Jinja2 environment for literal placeholder substitution

    Undefined placeholders are errors rather than empty strings, values are never escaped and the trailing newline of
    the template is kept.

    :param kwargs: Additional keyword arguments to pass to the Jinja2 Environment constructor.
    :return: A Jinja2 Environment instance.
    """
    kwargs.setdefault("undefined", jinja2.StrictUndefined)
    kwargs.setdefault("autoescape", False)
    kwargs.setdefault("keep_trailing_newline", True)
    return jinja2.Environment(**kwargs)


def render_template(template: str, values: dict[str, str]) -> str:
    """Substitutes values for the {{ NAME }} placeholders in a template string

    :param template: The template text.
    :param values: Placeholder names mapped to the literal strings substituted for them.
    :return: The rendered text.
    """
    return jinja2_env().from_string(template).render(**values)


def render_stage_template(context: Path, template: StageTemplate, stage_name: str | None = None) -> Path:
    """Renders a stage's build-file template into its build context

    :param context: The stage's build context directory.
    :param template: The template configuration for the stage.
    :param stage_name: Name of the stage, used in error messages.

    :return: The path of the rendered build-file.

    :raises ProvisionFileError: If the template does not exist.
    :raises RenderError: If the template cannot be parsed or references an undefined placeholder.
    """
    source = context / template.source
    destination = context / template.destination
    if not source.is_file():
        raise ProvisionFileError(f"Template '{template.source}' not found for stage {stage_name}.", filepath=source)

    log.info(f"Updating {template.destination} with instance-specific values...")
    try:
        rendered = render_template(source.read_text(), template.values)
    except jinja2.TemplateError as e:
        raise RenderError(e, stage=stage_name, template=source, destination=destination) from e

    destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_text(rendered)
    log.debug(f"Rendered {source} to {destination}")

    return destination
