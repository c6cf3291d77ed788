import re
from pathlib import Path
from typing import Dict, Set

MESSAGES: Dict[str, Dict[str, str]] = {}
AVAILABLE_LANGS: Set[str] = set()

DEFAULT_LANG = "fr"
DEFAULT_MESSAGES_PATH = Path(__file__).resolve().parent / "messages.txt"

LINE_RE = re.compile(r'^(\w+):([^|]+)\|\s*"(.*)"$')


def load_messages(path: str | Path = DEFAULT_MESSAGES_PATH):
    MESSAGES.clear()
    AVAILABLE_LANGS.clear()

    path = Path(path)
    if not path.exists():
        raise RuntimeError(f"messages file not found: {path}")

    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue

        m = LINE_RE.match(line)
        if not m:
            continue

        lang, key, text = m.groups()
        text = text.replace("\\n", "\n").strip()

        MESSAGES.setdefault(lang, {})[key.strip()] = text
        AVAILABLE_LANGS.add(lang)


def ensure_loaded() -> None:
    if not MESSAGES:
        load_messages()


def t(key: str, lang: str | None = None) -> str:
    ensure_loaded()
    if not lang or lang not in AVAILABLE_LANGS:
        lang = DEFAULT_LANG

    return (
        MESSAGES.get(lang, {}).get(key)
        or MESSAGES.get(DEFAULT_LANG, {}).get(key)
        or key
    )


def get_available_langs() -> list[str]:
    ensure_loaded()
    return sorted(AVAILABLE_LANGS)
