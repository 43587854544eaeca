from __future__ import annotations
import logging
from typing import Optional
from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

_custom_theme = Theme({
    "ok": "bold green",
    "warn": "bold yellow",
    "err": "bold red",
    "info": "cyan",
})

console = Console(theme=_custom_theme)

_ROOT = "qualtheory"


def setup_logging(level: str = "WARNING", log_file: Optional[str] = None) -> logging.Logger:
    root = logging.getLogger(_ROOT)
    root.setLevel(level.upper())
    if not any(isinstance(h, RichHandler) for h in root.handlers):
        root.addHandler(RichHandler(console=console, show_path=False, markup=False))
    if log_file and not any(isinstance(h, logging.FileHandler) for h in root.handlers):
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        root.addHandler(fh)
    return root


def get_logger(name: str) -> logging.Logger:
    if not name.startswith(_ROOT):
        name = f"{_ROOT}.{name}"
    return logging.getLogger(name)
