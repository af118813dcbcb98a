"""
Summary: Validate Where/What/Why header docstrings of the client modules.
Why: Keep module headers consistent as files are touched.
"""

from __future__ import annotations

import ast
from pathlib import Path

import pytest

WHERE_PREFIX: str = "Where: "
WHAT_PREFIX: str = "What: "
WHY_PREFIX: str = "Why: "

SRC_ROOT: Path = Path(__file__).resolve().parents[1] / "src"

TARGET_MODULES: tuple[Path, ...] = (
    Path("mbapi/platform/errors.py"),
    Path("mbapi/platform/musicbrainz/client.py"),
    Path("mbapi/platform/musicbrainz/cookies.py"),
    Path("mbapi/platform/musicbrainz/digest_auth.py"),
    Path("mbapi/platform/musicbrainz/http_client.py"),
    Path("mbapi/platform/musicbrainz/rate_limit.py"),
    Path("mbapi/platform/musicbrainz/session.py"),
    Path("mbapi/platform/musicbrainz/types.py"),
    Path("mbapi/platform/musicbrainz/user_agent.py"),
    Path("mbapi/platform/musicbrainz/xml_metadata.py"),
    Path("mbapi/platform/coverart/client.py"),
)


@pytest.mark.parametrize("module_path", TARGET_MODULES, ids=lambda path: str(path))
def test_module_headers_follow_where_what_why_schema(module_path: Path) -> None:
    """Ensure the module docstring opens with Where, What and Why lines."""

    source = (SRC_ROOT / module_path).read_text(encoding="utf-8")
    docstring = ast.get_docstring(ast.parse(source))
    assert docstring, f"{module_path} must start with a header docstring"

    lines = docstring.splitlines()
    assert len(lines) >= 3, f"{module_path} header must provide three lines"

    assert lines[0].startswith(WHERE_PREFIX), f"{module_path} must begin with '{WHERE_PREFIX}'"
    assert lines[0].removeprefix(WHERE_PREFIX).strip() == f"src/{module_path.as_posix()}", (
        f"{module_path} Where line must name the module path"
    )
    assert lines[1].startswith(WHAT_PREFIX), f"{module_path} second line must begin with '{WHAT_PREFIX}'"
    assert lines[2].startswith(WHY_PREFIX), f"{module_path} third line must begin with '{WHY_PREFIX}'"
    assert lines[1].removeprefix(WHAT_PREFIX).strip(), f"{module_path} what text cannot be empty"
    assert lines[2].removeprefix(WHY_PREFIX).strip(), f"{module_path} why text cannot be empty"
