"""Helpers for the hierarchical administrative codes.

NOP (18 digits): province(2) regency(2) district(3) village(3) block(3)
sub-block(4) sequence(1). The first 10 digits are the village (desa) code.
"""
from __future__ import annotations

import re

DESA_CODE_LENGTH = 10
NOP_LENGTH = 18

_SEPARATORS = re.compile(r"[.\-]")


def clean_nop(value: str) -> str:
    return _SEPARATORS.sub("", value.strip())


def desa_code_of(code: str) -> str:
    return code[:DESA_CODE_LENGTH]


def split_desa_code(desa_kode: str) -> dict[str, str]:
    return {
        "KD_PROPINSI": desa_kode[0:2],
        "KD_DATI2": desa_kode[2:4],
        "KD_KECAMATAN": desa_kode[4:7],
        "KD_KELURAHAN": desa_kode[7:10],
    }
