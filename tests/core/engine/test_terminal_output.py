# tests/core/engine/test_terminal_output.py
"""
Testes da limpeza de saída de terminal e do LineBuffer.

Os testes asseguram que:
- sequências de controle de terminal interativo são removidas
- cores (SGR) e tabs são preservadas
- o LineBuffer só entrega linhas completas e reconstrói UTF-8 dividido
"""

import pytest

try:
    from buckety.core.engine import LineBuffer, clean_terminal_output
except Exception as e:
    LineBuffer = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if LineBuffer is None:
        pytest.fail(f"Missing terminal helpers. Import error: {_IMPORT_ERR}")


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("progress 50%\r", "progress 50%"),
        ("\x1b]0;my title\x07done", "done"),
        ("\x1b]2;title\x1b\\done", "done"),
        ("\x1b(Bplain", "plain"),
        ("\x1b=keypad\x1b>", "keypad"),
        ("\x1b[2K\x1b[1Gline", "line"),
        ("\x1b[?25lhidden\x1b[?25h", "hidden"),
        ("bell\x07", "bell"),
    ],
)
def test_control_sequences_are_removed(raw, expected):
    _require_imports()
    assert clean_terminal_output(raw) == expected


def test_colors_and_tabs_are_preserved():
    _require_imports()
    raw = "\x1b[32mPASS\x1b[0m\tsrc/app.test.js"

    assert clean_terminal_output(raw) == raw


def test_line_buffer_returns_only_complete_lines():
    _require_imports()
    buffer = LineBuffer()

    assert buffer.feed(b"first\r\nsec") == ["first"]
    assert buffer.feed(b"ond\r\nthi") == ["second"]
    assert buffer.flush() == ["thi"]
    assert buffer.flush() == []


def test_line_buffer_rebuilds_split_multibyte_characters():
    _require_imports()
    buffer = LineBuffer()
    encoded = "ação ✓\n".encode("utf-8")

    lines = []
    for i in range(len(encoded)):
        lines.extend(buffer.feed(encoded[i:i + 1]))

    assert lines == ["ação ✓"]


def test_line_buffer_keeps_empty_lines_but_drops_empty_tail():
    _require_imports()
    buffer = LineBuffer()

    assert buffer.feed(b"a\n\nb\n") == ["a", "", "b"]
    assert buffer.flush() == []
