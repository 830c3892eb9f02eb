"""Test fixtures and utilities."""

from pathlib import Path

import pytest

from church_recon.ingestion import SourceFile
from church_recon.matching import Church

# Semicolon statement export with a running balance column
SAMPLE_STATEMENT_CSV = """Data;Histórico;Valor;Saldo
05/03/2024;PIX RECEBIDO JOAO DA SILVA;150,00;1.150,00
06/03/2024;PIX RECEBIDO MARIA OLIVEIRA;200,00;1.350,00
07/03/2024;TARIFA BANCARIA;-12,50;1.337,50
08/03/2024;SALDO DO DIA;0,00;1.337,50
"""

# SGML-flavoured OFX 1.x with unclosed leaf tags
SAMPLE_OFX = """OFXHEADER:100
DATA:OFXSGML
VERSION:102

<OFX>
<BANKMSGSRSV1>
<STMTTRNRS>
<STMTRS>
<BANKTRANLIST>
<DTSTART>20240301
<STMTTRN>
<TRNTYPE>CREDIT
<DTPOSTED>20240305120000[-3:BRT]
<TRNAMT>150.00
<NAME>JOAO DA SILVA
<MEMO>PIX RECEBIDO JOAO DA SILVA
</STMTTRN>
<STMTTRN>
<TRNTYPE>DEBIT
<DTPOSTED>20240307
<TRNAMT>-12,50
<NAME>TARIFA
</STMTTRN>
<STMTTRN>
<TRNTYPE>CREDIT
<DTPOSTED>NOTADATE
<TRNAMT>10.00
</STMTTRN>
<STMTTRN>
<TRNTYPE>CREDIT
<DTPOSTED>20240308
<TRNAMT>75.00
</BANKTRANLIST>
</STMTRS>
</STMTTRNRS>
</BANKMSGSRSV1>
</OFX>
"""

# Lines as rebuilt from a PDF statement page
SAMPLE_STATEMENT_LINES = [
    "EXTRATO DE CONTA CORRENTE PERIODO 03/2024",
    "DATA HISTORICO VALOR SALDO",
    "05/03 PIX RECEBIDO JOAO DA SILVA 150,00 1.150,00",
    "06/03 PIX RECEBIDO MARIA OLIVEIRA R$ 200,00 1.350,00",
    "07/03 TARIFA BANCARIA -12,50 1.337,50",
]

SAMPLE_CONTRIBUTORS_CSV = """Nome;Valor;Data
João da Silva;150,00;05/03/2024
Pedro Santos;80,00;10/03/2024
"""


@pytest.fixture
def statement_csv() -> SourceFile:
    """Sample CSV bank statement."""
    return SourceFile(name="extrato.csv", data=SAMPLE_STATEMENT_CSV.encode("utf-8"))


@pytest.fixture
def statement_ofx() -> SourceFile:
    """Sample OFX bank statement."""
    return SourceFile(name="extrato.ofx", data=SAMPLE_OFX.encode("utf-8"))


@pytest.fixture
def statement_lines() -> list[str]:
    """Sample PDF statement page as rebuilt lines."""
    return list(SAMPLE_STATEMENT_LINES)


@pytest.fixture
def contributors_csv() -> SourceFile:
    """Sample contributor list for one church."""
    return SourceFile(name="igreja-a.csv", data=SAMPLE_CONTRIBUTORS_CSV.encode("utf-8"))


@pytest.fixture
def church_a() -> Church:
    return Church(id="igreja-a", name="Igreja A")


@pytest.fixture
def church_b() -> Church:
    return Church(id="igreja-b", name="Igreja B")


@pytest.fixture
def temp_db(tmp_path) -> Path:
    """Temporary database path for testing."""
    return tmp_path / "test_state.db"
