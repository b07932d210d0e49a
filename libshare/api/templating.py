"""Jinja2 environment shared by all HTML routes."""

from pathlib import Path

from fastapi.templating import Jinja2Templates

from libshare.services.formats import format_file_size

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


def first_char(value: str) -> str:
    return value[:1].upper() if value else "U"


templates.env.filters["filesize"] = format_file_size
templates.env.filters["first_char"] = first_char
