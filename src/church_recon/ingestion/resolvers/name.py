"""
Name column discovery and description cleaning.

Cleaning removes bank boilerplate and technical identifiers while keeping
people's and companies' names intact, including roman numerals ("JOAO II")
and meaningful numbers ("POSTO 24 HORAS").
"""

from __future__ import annotations

import logging
import re
import unicodedata
from collections.abc import Iterable, Sequence

logger = logging.getLogger(__name__)

_BANK_NOISE_WORDS = (
    "PIX", "TED", "DOC", "TRANSF", "TRANSFERENCIA", "RECEBIDO", "ENVIADO",
    "PAGTO", "PAGAMENTO", "CONTA", "CORRENTE", "POUPANCA", "BANCO",
    "COMPROVANTE", "AUTENTICACAO", "STR", "PGTO", "CREDITO", "DEBITO",
    "EXTRATO", "FAVORECIDO", "LIQUIDACAO", "ESTORNO", "LANCTO",
)

_LETTERS = re.compile(r"[a-zA-ZáàâãéèêíïóôõöúçÁÀÂÃÉÈÊÍÏÓÔÕÖÚÇ]")
# Placeholders use private-use delimiters so punctuation stripping leaves them intact
_PROTECTED_MARK = re.compile("\ue000(\\d+)\ue001")
# "RECEB OUTRA IF" also matches "RECEB.OUTRA.IF" and "RECEB_OUTRA-IF"
_KEYWORD_SEPARATOR = r"[\s._-]+"


class NameResolver:
    """Locates the description column and cleans descriptions for display."""

    SAMPLE_SIZE = 50

    BANK_NOISE = tuple(
        re.compile(rf"\b{word}\b", re.IGNORECASE) for word in _BANK_NOISE_WORDS
    ) + (re.compile(r"\bRECEB\.?\s*OUTRA\s*IF\b", re.IGNORECASE),)

    CONTROL_KEYWORDS = (
        "SALDO", "TOTAL", "SOMATORIO", "RESUMO", "FECHAMENTO", "ACUMULADO",
        "DISPONIVEL", "APLICACAO", "RESGATE", "SALDO ANTERIOR", "SUBTOTAL",
        "RENDIMENTO", "TARIFAS", "IOF", "JUROS", "IRRF", "SDO",
    )

    ROMAN_NUMERALS = re.compile(r"\b(I|II|III|IV|V|VI|VII|VIII|IX|X)\b")
    SEMANTIC_TERMS = re.compile(
        r"\b(\d+\s*(HORAS|ESTRELAS|SEDE|LOJA|FILIAL|KM|AV|RUA|QD|LT|BL))\b", re.IGNORECASE
    )

    TECHNICAL_GARBAGE = (
        re.compile(r"\*+[\d.]+\*+"),  # ***981201**
        re.compile(r"\d{3}\.\d{3}\.\d{3}-\d{2}"),  # CPF
        re.compile(r"\d{2}\.\d{3}\.\d{3}/\d{4}-\d{2}"),  # CNPJ
        re.compile(r"\b[A-Z0-9]{15,}\b"),  # hashes, long ids
        re.compile(r"[0-9]{5,}"),  # transaction numbers
    )

    _PUNCTUATION = re.compile(r"[*\-_.;:/\\|()<>]")

    @classmethod
    def clean(cls, raw: str, ignore_keywords: Iterable[str] = ()) -> str:
        """Strip boilerplate and identifiers from a description."""
        if not raw:
            return ""

        protected: list[str] = []

        def protect(match: re.Match) -> str:
            protected.append(match.group(0))
            return f"\ue000{len(protected) - 1}\ue001"

        cleaned = cls.SEMANTIC_TERMS.sub(protect, raw)
        cleaned = cls.ROMAN_NUMERALS.sub(protect, cleaned)

        for pattern in cls.BANK_NOISE:
            cleaned = pattern.sub(" ", cleaned)

        for pattern in cls._keyword_patterns(ignore_keywords):
            cleaned = pattern.sub(" ", cleaned)

        for pattern in cls.TECHNICAL_GARBAGE:
            cleaned = pattern.sub(" ", cleaned)

        cleaned = cls._PUNCTUATION.sub(" ", cleaned)
        cleaned = " ".join(token for token in cleaned.split() if not token.isdigit())
        cleaned = _PROTECTED_MARK.sub(lambda m: protected[int(m.group(1))], cleaned)
        result = " ".join(cleaned.split())

        if len(result) < 2 and len(raw.strip()) >= 2:
            return raw.strip()
        return result

    @staticmethod
    def _keyword_patterns(keywords: Iterable[str]) -> list[re.Pattern]:
        # Longest first, so "PIX RECEBIDO" goes before "PIX"
        patterns = []
        for keyword in sorted((k for k in keywords if k and k.strip()), key=len, reverse=True):
            body = _KEYWORD_SEPARATOR.join(re.escape(token) for token in keyword.split())
            patterns.append(re.compile(rf"\b{body}\b", re.IGNORECASE))
        return patterns

    @staticmethod
    def normalize(text: str) -> str:
        """Comparison form: upper case, no accents, no punctuation."""
        if not text:
            return ""
        decomposed = unicodedata.normalize("NFD", text.upper())
        stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
        stripped = re.sub(r"[^\w\s]", "", stripped, flags=re.ASCII)
        return " ".join(stripped.split())

    @classmethod
    def is_control_row(cls, text: str) -> bool:
        """True for balance/total lines (SALDO, TOTAL, RESUMO...)."""
        if not text:
            return False
        upper = cls.normalize(text)
        return any(keyword in upper for keyword in cls.CONTROL_KEYWORDS)

    @classmethod
    def identify_name_column(
        cls,
        rows: Sequence[Sequence[str]],
        exclude: Iterable[int] = (),
        sample_size: int | None = None,
    ) -> int:
        """Return the index of the likeliest description column, or -1.

        Text-dominant, multi-word cells score up; date- or number-shaped
        cells score down. Ties go to the longer average alphabetic run.
        """
        excluded = set(exclude)
        sample = rows[: sample_size or cls.SAMPLE_SIZE]
        scores: dict[int, float] = {}
        runs: dict[int, list[int]] = {}

        for row in sample:
            for index, cell in enumerate(row):
                if index in excluded:
                    continue
                text = str(cell or "").strip()
                if len(text) < 3:
                    continue

                letters = len(_LETTERS.findall(text))
                digits = sum(ch.isdigit() for ch in text)
                score = scores.get(index, 0.0)
                if letters > digits:
                    score += 5
                if len(text.split()) >= 2 and letters > 10:
                    score += 3
                if re.match(r"^\d{2}[/-]\d{2}", text) or re.match(r"^[\d,.]+$", text):
                    score -= 10
                scores[index] = score

                entry = runs.setdefault(index, [0, 0])
                entry[0] += cls._longest_alpha_run(text)
                entry[1] += 1

        positive = {index: score for index, score in scores.items() if score > 0}
        if not positive:
            return -1

        def rank(index: int) -> tuple[float, float, int]:
            total, count = runs[index]
            return (-positive[index], -(total / count), index)

        best = min(positive, key=rank)
        logger.debug("Name column %d chosen from scores %s", best, positive)
        return best

    @staticmethod
    def _longest_alpha_run(text: str) -> int:
        longest = current = 0
        for ch in text:
            if ch.isalpha() or (ch == " " and current):
                current += 1
                longest = max(longest, current)
            else:
                current = 0
        return longest
