import pytest

import grep_lite

ENV_VARS = (
    "GREP_LITE_COLOR",
    "GREP_LITE_HIGHLIGHT_STYLE",
    "GREP_LITE_ENCODING",
    "NO_COLOR",
    "FORCE_COLOR",
    "TTY_COMPATIBLE",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    # En .env ved siden av grep_lite.py skal ikke påvirke testene.
    monkeypatch.setattr(grep_lite, "SCRIPT_DIR", tmp_path / "script")
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def script_dir(tmp_path):
    path = tmp_path / "script"
    path.mkdir()
    return path


@pytest.fixture
def write_file(tmp_path):
    def _write(name, *lines, trailing_newline=True):
        path = tmp_path / name
        text = "\n".join(lines)
        if trailing_newline:
            text += "\n"
        path.write_text(text, encoding="utf-8")
        return str(path)
    return _write
