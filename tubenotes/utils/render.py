import os
from jinja2 import Environment, FileSystemLoader

TEMPLATE_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "templates")

_env = Environment(
    loader=FileSystemLoader(TEMPLATE_DIR),
    keep_trailing_newline=True,
)

def render(name: str, **context) -> str:
    """Render one of the markdown snippets under tubenotes/templates."""
    return _env.get_template(f"{name}.md.jinja2").render(**context)
