"""Jinja2 template loading shared by targets."""

from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined, Template, TemplateError

from rowsync.interfaces import ConfigurationError


def load_template(template_path: str) -> Template:
    """
    Load an HTML template from a file path.

    Autoescaping is always on: both Telegram HTML and catalog pages need
    row values escaped. Undefined names fail the render instead of printing
    an empty string.

    Raises:
        ConfigurationError: Missing path or template syntax error
    """
    if not template_path:
        raise ConfigurationError("template not set")
    path = Path(template_path)
    if not path.is_file():
        raise ConfigurationError(f"template not found: {path}")

    env = Environment(
        loader=FileSystemLoader(str(path.parent)),
        autoescape=True,
        undefined=StrictUndefined,
        keep_trailing_newline=True,
    )
    try:
        return env.get_template(path.name)
    except TemplateError as e:
        raise ConfigurationError(f"failed to parse template {path}: {e}") from e
