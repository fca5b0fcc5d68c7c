"""Prompts enviados ao modelo."""

from __future__ import annotations

from datetime import date

_TEXT_EXTRACTION = (
    "Você extrai dados de lembretes de validade de produtos a partir de mensagens "
    "em português do Brasil.\n"
    'Retorne SOMENTE JSON com as chaves: {{"produto": string|null, '
    '"validade": "YYYY-MM-DD"|null, "diasAntes": number|null}}.\n'
    "- produto: nome do produto (ex.: Leite Integral), sem a data.\n"
    "- validade: data de validade; aceite formatos pt-BR (25/01, 25/01/26, 25 de janeiro). "
    "Ao inferir o ano, escolha a próxima ocorrência a partir de hoje ({today}, fuso {tz}).\n"
    "- diasAntes: com quantos dias de antecedência avisar (inteiro).\n"
    "Se não houver informação suficiente para um campo, retorne null."
)

VISION_DATE_PROMPT = (
    "Extraia a data de validade da imagem. "
    'Responda SOMENTE com "YYYY-MM-DD" ou "null".'
)

OCR_TRANSCRIPTION_PROMPT = (
    "Transcreva todo o texto impresso visível no rótulo da imagem, linha a linha, "
    "sem comentários. Se não houver texto legível, responda null."
)


def text_extraction_prompt(today: date, tz: str) -> str:
    return _TEXT_EXTRACTION.format(today=today.isoformat(), tz=tz)
