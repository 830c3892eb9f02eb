"""
Contribution and payment type classification.

Church terms (DÍZIMO, OFERTA...) take priority over bank terms (PIX, TED...).
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence


class TypeResolver:
    """Classifies descriptions and finds the type column of contributor lists."""

    SAMPLE_SIZE = 100
    MIN_COLUMN_SCORE = 10

    TYPE_COLUMN_KEYWORDS = (
        "TIPO", "CLASSIFICACAO", "CATEGORIA", "NATUREZA", "HISTORICO",
        "OPERAÇÃO", "MOVIMENTO", "MOTIVO",
    )

    CHURCH_PATTERNS = (
        "DÍZIMO", "DIZIMO", "OFERTA", "MISSÃO", "MISSAO", "MISSÕES", "MISSOES",
        "VOTO", "CAMPANHA", "PRIMÍCIA", "PRIMICIA", "DOAÇÃO", "DOACAO", "BENEFICENTE",
    )

    # Insertion order is priority order
    BANK_PATTERNS = {
        "PIX": "PIX",
        "TED": "TED",
        "DOC": "DOC",
        "TEV": "TRANSF.",
        "TRANSFERENCIA": "TRANSF.",
        "TRANSF": "TRANSF.",
        "DEPOSITO": "DEPÓSITO",
        "DEP ": "DEPÓSITO",
        "BOLETO": "BOLETO",
        "COBRANCA": "BOLETO",
        "TARIFA": "TARIFA",
        "TAXA": "TARIFA",
        "CESTA": "TARIFA",
        "RESGATE": "RESGATE",
        "APLICACAO": "APLIC.",
        "PAGAMENTO": "PAGTO",
        "PAGTO": "PAGTO",
        "SAQUE": "SAQUE",
        "CARTAO": "CARTÃO",
        "DB VIS": "CARTÃO",
        "ELO": "CARTÃO",
        "MASTERCARD": "CARTÃO",
        "VISA": "CARTÃO",
        "CHEQUE": "CHEQUE",
    }

    DEFAULT_TYPE = "OUTROS"

    @classmethod
    def resolve_from_description(cls, description: str) -> str:
        """Extract a type label from a raw bank description.

        "PIX RECEBIDO JOAO" gives "PIX"; "OFERTA MISSOES" gives "OFERTA".
        """
        if not description:
            return cls.DEFAULT_TYPE
        upper = description.upper()

        for term in cls.CHURCH_PATTERNS:
            if term in upper:
                return term
        for key, label in cls.BANK_PATTERNS.items():
            if key in upper:
                return label
        if "PG" in upper or "PAG" in upper:
            return "PAGTO"
        return cls.DEFAULT_TYPE

    @classmethod
    def identify_type_column(
        cls,
        rows: Sequence[Sequence[str]],
        exclude: Iterable[int] = (),
        keywords: Iterable[str] = (),
    ) -> int:
        """Return the index of the contribution-type column, or -1.

        A header naming the column scores 15, each cell with a church term
        scores 5, each cell that is exactly a bank term scores 2, and date-
        or number-shaped cells cost 5.
        """
        if not rows:
            return -1
        excluded = set(exclude)
        church_terms = tuple(dict.fromkeys((*cls.CHURCH_PATTERNS, *(k.upper() for k in keywords))))
        bank_terms = set(cls.BANK_PATTERNS)
        sample = rows[: cls.SAMPLE_SIZE]
        scores: dict[int, float] = {}

        for index, cell in enumerate(rows[0]):
            if index in excluded:
                continue
            value = str(cell or "").upper()
            if any(keyword in value for keyword in cls.TYPE_COLUMN_KEYWORDS):
                scores[index] = scores.get(index, 0) + 15

        for row in sample:
            for index, cell in enumerate(row):
                if index in excluded:
                    continue
                raw = str(cell or "")
                value = raw.upper().strip()
                score = scores.get(index, 0)
                if len(value) >= 2:
                    if any(term in value for term in church_terms):
                        score += 5
                    elif value in bank_terms or (value.endswith("S") and value[:-1] in bank_terms):
                        score += 2
                if re.match(r"^\d{2}[/-]\d{2}", raw):
                    score -= 5
                if re.match(r"^[\d.,R$\s]+$", raw):
                    score -= 5
                scores[index] = score

        if not scores:
            return -1
        best = min(scores, key=lambda index: (-scores[index], index))
        return best if scores[best] > cls.MIN_COLUMN_SCORE else -1
