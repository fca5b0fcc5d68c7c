"""Parser defensivo das respostas do modelo.

O formato da resposta não é garantido: o texto pode vir em
`choices[0].message.content` (string ou lista de partes), em `output_text`,
em `content` ou em `text`, como atributo ou chave de dict. O texto pode vir
cercado de code fences ou prefixos ("Resposta: ...").

Regras:
- Nunca levanta; entrada ilegível vira None
- Produto implausível (curto, sem vogal, só dígitos) vira None
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from datetime import date
from typing import Any

from lembre_ai.domain.dates import (
    DEFAULT_TIMEZONE,
    find_date_in_text,
    is_canonical_date,
    normalize_date,
)
from lembre_ai.domain.draft import MAX_LEAD_DAYS, ExtractionResult

_FENCE = re.compile(r"```(?:[\w-]*\n)?([\s\S]*?)```")
_INLINE_CODE = re.compile(r"`([^`]+)`")
_ANSWER_PREFIX = re.compile(r"^[A-Za-zÀ-ÿ][A-Za-zÀ-ÿ0-9 \t()]{0,59}:\s*")
_VOWEL = re.compile(r"[aeiouáéíóúâêôãõàü]", re.IGNORECASE)
_DIGITS_ONLY = re.compile(r"^\d+$")
_INTEGER = re.compile(r"^\s*(-?\d+)(?:[.,]0+)?\s*(?:dias?)?\s*$", re.IGNORECASE)

_MISSING = object()


def _lookup(obj: Any, key: str | int) -> Any:
    """Acessa atributo, chave ou índice; devolve _MISSING se não existir."""
    if obj is None:
        return _MISSING
    if isinstance(key, int):
        if isinstance(obj, (list, tuple)) and len(obj) > key:
            return obj[key]
        return _MISSING
    if isinstance(obj, Mapping):
        return obj.get(key, _MISSING)
    return getattr(obj, key, _MISSING)


def _probe(obj: Any, *path: str | int) -> Any:
    current = obj
    for key in path:
        current = _lookup(current, key)
        if current is _MISSING:
            return _MISSING
    return current


def _as_text(value: Any) -> str | None:
    """Converte conteúdo (string ou lista de partes) em texto."""
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)):
        pieces: list[str] = []
        for part in value:
            if isinstance(part, str):
                pieces.append(part)
                continue
            text = _lookup(part, "text")
            if isinstance(text, str):
                pieces.append(text)
        return "".join(pieces) if pieces else None
    return None


_RESPONSE_SHAPES: tuple[tuple[str | int, ...], ...] = (
    ("choices", 0, "message", "content"),
    ("output_text",),
    ("content",),
    ("text",),
)


def response_text(response: Any) -> str | None:
    """Extrai o texto de uma resposta de modelo de formato desconhecido."""
    if isinstance(response, str):
        return response
    for shape in _RESPONSE_SHAPES:
        text = _as_text(_probe(response, *shape))
        if text is not None:
            return text
    return None


def clean_model_output(text: str | None) -> str:
    """Remove code fences, crases e prefixos do tipo "Resposta:"."""
    if not text:
        return ""
    result = text.strip()
    result = _FENCE.sub(lambda m: m.group(1).strip(), result)
    result = _INLINE_CODE.sub(r"\1", result)
    if not result.startswith("{"):
        result = _ANSWER_PREFIX.sub("", result, count=1)
    return result.strip()


def extract_json_object(text: str | None) -> str | None:
    """Primeiro objeto JSON balanceado do texto (respeitando strings)."""
    if not text:
        return None
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escape = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escape:
                escape = False
            elif char == "\\":
                escape = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start : index + 1]
    return None


def parse_json_object(text: str | None) -> dict[str, Any] | None:
    candidate = extract_json_object(clean_model_output(text))
    if candidate is None:
        return None
    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def is_plausible_product_name(name: Any) -> bool:
    """Rejeita nomes curtos, sem vogal ou só numéricos."""
    if not isinstance(name, str):
        return False
    stripped = name.strip()
    if len(stripped) < 2:
        return False
    if not _VOWEL.search(stripped):
        return False
    return not _DIGITS_ONLY.match(stripped)


def capitalize_first(name: str) -> str:
    stripped = name.strip()
    return stripped[:1].upper() + stripped[1:]


def _coerce_days(value: Any) -> int | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        days = value
    elif isinstance(value, float):
        if not value.is_integer():
            return None
        days = int(value)
    elif isinstance(value, str):
        match = _INTEGER.match(value)
        if not match:
            return None
        days = int(match.group(1))
    else:
        return None
    return days if 0 <= days <= MAX_LEAD_DAYS else None


def _coerce_validade(value: Any, today: date | None, tz: str) -> str | None:
    if not isinstance(value, str) or value.strip().lower() in {"", "null", "none"}:
        return None
    if is_canonical_date(value.strip()):
        return value.strip()
    return normalize_date(value, today=today, tz=tz)


def coerce_extraction(
    payload: Mapping[str, Any] | None,
    *,
    today: date | None = None,
    tz: str = DEFAULT_TIMEZONE,
) -> ExtractionResult | None:
    """Converte o JSON do modelo em ExtractionResult (ou None se vazio)."""
    if not payload:
        return None

    produto_raw = payload.get("produto")
    produto = capitalize_first(produto_raw) if is_plausible_product_name(produto_raw) else None
    validade = _coerce_validade(payload.get("validade"), today, tz)
    dias_raw = payload.get("diasAntes", payload.get("dias_antes"))
    dias_antes = _coerce_days(dias_raw)

    if produto is None and validade is None and dias_antes is None:
        return None
    return ExtractionResult(produto=produto, validade=validade, dias_antes=dias_antes)


def parse_date_answer(
    text: str | None,
    *,
    today: date | None = None,
    tz: str = DEFAULT_TIMEZONE,
) -> str | None:
    """Interpreta a resposta curta do modelo de visão ("YYYY-MM-DD" ou "null")."""
    cleaned = clean_model_output(text).strip().strip('"').strip()
    if not cleaned or cleaned.lower() == "null":
        return None
    if is_canonical_date(cleaned):
        return cleaned
    return normalize_date(cleaned, today=today, tz=tz) or find_date_in_text(
        cleaned, today=today, tz=tz
    )
