"""Normalização de datas de validade para o formato canônico (YYYY-MM-DD).

Aceita os formatos mais comuns em rótulos e mensagens brasileiras:

1. Numérico com ano primeiro: 2026-01-10, 2026/01/10, 2026.01.10
2. Numérico com dia primeiro: 10/01/2026, 10-01-26, 10.01.2026
3. Dia/mês sem ano: 10/01 (ano inferido)
4. Mês por extenso: "10 de janeiro de 2026", "10 jan 2026", "10 de jan."
5. Só mês/ano: 01/2026, 01/26, jan/2026, "janeiro de 2026"

Regras:
- Funções puras, nunca levantam exceção (entrada inválida -> None)
- Validade de calendário real (meses de 28-31 dias, anos bissextos)
- Anos aceitos: 2000..2100
- Um formato que casa mas gera data inválida é descartado e o próximo é tentado
"""

from __future__ import annotations

import calendar
import re
import unicodedata
from collections.abc import Callable
from datetime import date, datetime
from typing import Literal
from zoneinfo import ZoneInfo

MIN_YEAR = 2000
MAX_YEAR = 2100
DEFAULT_TIMEZONE = "America/Sao_Paulo"

MonthYearPolicy = Literal["first", "last"]

MONTHS: dict[str, int] = {
    "janeiro": 1,
    "fevereiro": 2,
    "marco": 3,
    "abril": 4,
    "maio": 5,
    "junho": 6,
    "julho": 7,
    "agosto": 8,
    "setembro": 9,
    "outubro": 10,
    "novembro": 11,
    "dezembro": 12,
}

MONTH_ABBREVIATIONS: dict[str, int] = {name[:3]: number for name, number in MONTHS.items()}

_CANONICAL = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")

# Delimitadores: um número não pode continuar outra data (ex: "31/02/2026"
# não pode virar "02/2026" por busca parcial).
_START = r"(?<![\d/.\-])"
_END = r"(?!\d|[/.\-]\d)"
_SEP = r"[/.\-]"

_YEAR_FIRST = re.compile(
    rf"{_START}(?P<y>\d{{4}})(?P<s>{_SEP})(?P<m>\d{{1,2}})(?P=s)(?P<d>\d{{1,2}}){_END}"
)
_DAY_FIRST = re.compile(
    rf"{_START}(?P<d>\d{{1,2}})(?P<s>{_SEP})(?P<m>\d{{1,2}})(?P=s)(?P<y>\d{{4}}|\d{{2}}){_END}"
)
_DAY_MONTH = re.compile(rf"{_START}(?P<d>\d{{1,2}}){_SEP}(?P<m>\d{{1,2}}){_END}")
_SPELLED = re.compile(
    rf"{_START}(?P<d>\d{{1,2}})\s*(?:de\s+|{_SEP}\s*)?(?P<m>[a-z]{{3,9}})(?![a-z])\.?"
    rf"(?:\s*(?:de\s+|{_SEP}\s*)?(?P<y>\d{{4}}|\d{{2}}))?{_END}"
)
_MONTH_YEAR_NUMERIC = re.compile(rf"{_START}(?P<m>\d{{1,2}}){_SEP}(?P<y>\d{{4}}|\d{{2}}){_END}")
_MONTH_YEAR_SPELLED = re.compile(
    rf"(?<![a-z])(?P<m>[a-z]{{3,9}})(?![a-z])\.?\s*(?:de\s+|{_SEP}\s*)?(?P<y>\d{{4}}|\d{{2}}){_END}"
)


def strip_accents(text: str) -> str:
    """Remove acentos (NFD + descarte de marcas combinantes)."""
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def _prepare(text: str) -> str:
    cleaned = strip_accents(text).lower().strip()
    cleaned = cleaned.strip("\"'“”‘’`")
    return re.sub(r"\s+", " ", cleaned).strip()


def is_valid_date(year: int, month: int, day: int) -> bool:
    """True se (year, month, day) é uma data real dentro de 2000..2100."""
    if not MIN_YEAR <= year <= MAX_YEAR:
        return False
    if not 1 <= month <= 12:
        return False
    return 1 <= day <= calendar.monthrange(year, month)[1]


def date_from_parts(year: int | None, month: int | None, day: int | None) -> str | None:
    """Converte uma tripla numérica em data canônica (ou None)."""
    try:
        y, m, d = int(year), int(month), int(day)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if not is_valid_date(y, m, d):
        return None
    return f"{y:04d}-{m:02d}-{d:02d}"


def is_canonical_date(value: str | None) -> bool:
    """True se `value` já está no formato canônico e é uma data válida."""
    if not isinstance(value, str):
        return False
    match = _CANONICAL.match(value)
    if not match:
        return False
    return is_valid_date(int(match.group(1)), int(match.group(2)), int(match.group(3)))


def today_in(tz: str | ZoneInfo = DEFAULT_TIMEZONE) -> date:
    """Data corrente no fuso de referência."""
    zone = tz if isinstance(tz, ZoneInfo) else ZoneInfo(tz)
    return datetime.now(zone).date()


def infer_year(month: int, day: int, today: date) -> int:
    """Ano do próximo (month, day) a partir de `today`.

    Usa o ano corrente, a menos que o dia/mês já tenha passado
    (estritamente antes de hoje); nesse caso, o ano seguinte.
    """
    if (month, day) < (today.month, today.day):
        return today.year + 1
    return today.year


def _expand_year(raw: str) -> int:
    value = int(raw)
    return 2000 + value if len(raw) == 2 else value


def month_from_name(token: str) -> int | None:
    """Resolve nome de mês pt-BR (completo, abreviado ou prefixo)."""
    token = strip_accents(token).lower().rstrip(".")
    if len(token) < 3:
        return None
    if token in MONTHS:
        return MONTHS[token]
    if token in MONTH_ABBREVIATIONS:
        return MONTH_ABBREVIATIONS[token]
    for name, number in MONTHS.items():
        if name.startswith(token):
            return number
    return None


def _resolve_month_year(year: int, month: int, policy: MonthYearPolicy) -> str | None:
    if not (MIN_YEAR <= year <= MAX_YEAR and 1 <= month <= 12):
        return None
    day = 1 if policy == "first" else calendar.monthrange(year, month)[1]
    return date_from_parts(year, month, day)


# -----------------------------------------------------------------------------
# Construtores por formato: recebem o match e devolvem data canônica ou None
# -----------------------------------------------------------------------------


def _from_year_first(match: re.Match[str], today: date, policy: MonthYearPolicy) -> str | None:
    return date_from_parts(int(match["y"]), int(match["m"]), int(match["d"]))


def _from_day_first(match: re.Match[str], today: date, policy: MonthYearPolicy) -> str | None:
    return date_from_parts(_expand_year(match["y"]), int(match["m"]), int(match["d"]))


def _from_day_month(match: re.Match[str], today: date, policy: MonthYearPolicy) -> str | None:
    month, day = int(match["m"]), int(match["d"])
    if not 1 <= month <= 12:
        return None
    return date_from_parts(infer_year(month, day, today), month, day)


def _from_spelled(match: re.Match[str], today: date, policy: MonthYearPolicy) -> str | None:
    month = month_from_name(match["m"])
    if month is None:
        return None
    day = int(match["d"])
    if match["y"]:
        return date_from_parts(_expand_year(match["y"]), month, day)
    return date_from_parts(infer_year(month, day, today), month, day)


def _from_month_year_numeric(
    match: re.Match[str], today: date, policy: MonthYearPolicy
) -> str | None:
    return _resolve_month_year(_expand_year(match["y"]), int(match["m"]), policy)


def _from_month_year_spelled(
    match: re.Match[str], today: date, policy: MonthYearPolicy
) -> str | None:
    month = month_from_name(match["m"])
    if month is None:
        return None
    return _resolve_month_year(_expand_year(match["y"]), month, policy)


_Builder = Callable[[re.Match[str], date, MonthYearPolicy], str | None]

# Ordem = prioridade
_FORMS: tuple[tuple[re.Pattern[str], _Builder], ...] = (
    (_YEAR_FIRST, _from_year_first),
    (_DAY_FIRST, _from_day_first),
    (_DAY_MONTH, _from_day_month),
    (_SPELLED, _from_spelled),
    (_MONTH_YEAR_NUMERIC, _from_month_year_numeric),
    (_MONTH_YEAR_SPELLED, _from_month_year_spelled),
)


def normalize_date(
    text: str | None,
    *,
    today: date | None = None,
    month_year: MonthYearPolicy = "first",
    tz: str | ZoneInfo = DEFAULT_TIMEZONE,
) -> str | None:
    """Normaliza um fragmento de data para YYYY-MM-DD.

    O fragmento inteiro precisa ser uma data (use `find_date_in_text` para
    procurar datas dentro de frases ou transcrições).

    Args:
        text: Fragmento ("10/01/2026", "10 de janeiro", "01/26"...)
        today: Data de referência para inferência de ano (default: hoje em `tz`)
        month_year: Resolução de formatos só mês/ano ("first" = dia 1, "last" = último dia)
        tz: Fuso de referência quando `today` não é informado

    Returns:
        Data canônica ou None (nunca levanta)
    """
    if not isinstance(text, str):
        return None
    prepared = _prepare(text)
    if not prepared:
        return None
    reference = today or today_in(tz)

    for pattern, builder in _FORMS:
        match = pattern.fullmatch(prepared)
        if match is None:
            continue
        result = builder(match, reference, month_year)
        if result is not None:
            return result
    return None


def find_date_in_text(
    text: str | None,
    *,
    today: date | None = None,
    month_year: MonthYearPolicy = "first",
    tz: str | ZoneInfo = DEFAULT_TIMEZONE,
) -> str | None:
    """Procura a primeira data válida em um texto livre (ex: transcrição de rótulo).

    Os formatos são tentados na mesma ordem de prioridade de `normalize_date`;
    dentro de um formato vence a primeira ocorrência válida.
    """
    if not isinstance(text, str):
        return None
    prepared = _prepare(text)
    if not prepared:
        return None
    reference = today or today_in(tz)

    for pattern, builder in _FORMS:
        for match in pattern.finditer(prepared):
            result = builder(match, reference, month_year)
            if result is not None:
                return result
    return None


def format_date_br(canonical: str | None) -> str | None:
    """YYYY-MM-DD -> dd/mm/yyyy (None se a entrada não for canônica)."""
    if not is_canonical_date(canonical):
        return None
    year, month, day = canonical.split("-")  # type: ignore[union-attr]
    return f"{day}/{month}/{year}"


def parse_canonical(canonical: str) -> date:
    """YYYY-MM-DD -> `datetime.date`. Levanta ValueError se inválida."""
    if not is_canonical_date(canonical):
        raise ValueError(f"data fora do formato canônico: {canonical!r}")
    return date.fromisoformat(canonical)
