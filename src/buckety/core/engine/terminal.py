# src/buckety/core/engine/terminal.py
"""
Limpeza da saída de terminal produzida pelos scripts.

Os scripts rodam com TTY alocado, então a saída traz sequências de
controle pensadas para um terminal interativo. Este módulo remove as que
não fazem sentido fora dele e preserva as cores (SGR).

Remove:
    - carriage returns
    - OSC (`ESC ] ... BEL` ou `ESC ] ... ESC \\`), ex.: título de janela
    - seleção de charset (`ESC ( B`, `ESC ) 0`, ...)
    - modos de keypad (`ESC =`, `ESC >`)
    - CSI cujo byte final não é `m` (cursor, erase, modos)
    - caracteres de controle C0, exceto TAB, LF e ESC

Preserva:
    - SGR (`ESC [ ... m`), tabs e quebras de linha
"""

from __future__ import annotations

import codecs
import re
from typing import List

_CARRIAGE_RETURN = re.compile(r"\r")
_OSC = re.compile(r"\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)")
_CHARSET = re.compile(r"\x1b[()][AB012]")
_KEYPAD = re.compile(r"\x1b[>=]")
_NON_SGR_CSI = re.compile(r"\x1b\[[0-?]*[ -/]*[@-ln-~]")
_CONTROL = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1a\x1c-\x1f]")


def clean_terminal_output(text: str) -> str:
    text = _CARRIAGE_RETURN.sub("", text)
    text = _OSC.sub("", text)
    text = _CHARSET.sub("", text)
    text = _KEYPAD.sub("", text)
    text = _NON_SGR_CSI.sub("", text)
    return _CONTROL.sub("", text)


class LineBuffer:
    """
    Acumula bytes do stream de exec e devolve linhas completas já limpas.

    A decodificação é incremental (UTF-8, `errors="replace"`), então um
    caractere multibyte dividido entre dois chunks é reconstruído.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._partial = ""

    def feed(self, chunk: bytes) -> List[str]:
        self._partial += self._decoder.decode(chunk)
        *lines, self._partial = self._partial.split("\n")
        return [clean_terminal_output(line) for line in lines]

    def flush(self) -> List[str]:
        rest = self._partial + self._decoder.decode(b"", final=True)
        self._partial = ""
        if not rest:
            return []
        cleaned = clean_terminal_output(rest)
        return [cleaned] if cleaned else []
