from pathlib import Path

__version__ = "0.0.0-dev"

_version_file = Path(__file__).with_name("VERSION")
if _version_file.is_file():
    __version__ = _version_file.read_text(encoding="utf-8").strip()
