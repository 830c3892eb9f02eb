"""Tests for statement parsers and the normalizer."""

import pytest

from church_recon.ingestion import (
    FileType,
    NormalizedTransaction,
    OperationCancelled,
    RawDocument,
    TransactionDraft,
    normalize,
)
from church_recon.ingestion.parsers import ColumnMapping, OfxParser, TabularParser, TextLineParser
from church_recon.ingestion.parsers.ofx import OfxToken, ofx_amount, tokenize
from church_recon.ingestion.parsers.text_lines import lines_to_rows, split_line

STATEMENT_ROWS = [
    ["Data", "Histórico", "Valor", "Saldo"],
    ["05/03/2024", "PIX RECEBIDO JOAO DA SILVA", "150,00", "1.150,00"],
    ["06/03/2024", "PIX RECEBIDO MARIA OLIVEIRA", "200,00", "1.350,00"],
    ["07/03/2024", "TARIFA BANCARIA", "-12,50", "1.337,50"],
    ["08/03/2024", "SALDO DO DIA", "0,00", "1.337,50"],
]


def document(content, file_type=FileType.CSV, name="extrato.csv") -> RawDocument:
    return RawDocument(source_name=name, file_type=file_type, content=content, timestamp="")


class TestTabularParser:
    """Tests for TabularParser."""

    @pytest.fixture
    def parser(self):
        return TabularParser()

    def test_parses_statement_rows(self, parser):
        """Test columns are discovered and surviving rows become drafts."""
        drafts = parser.parse(document(STATEMENT_ROWS))

        assert [(d.raw_date, d.raw_description, d.raw_amount) for d in drafts] == [
            ("2024-03-05", "JOAO DA SILVA", "150.00"),
            ("2024-03-06", "MARIA OLIVEIRA", "200.00"),
            ("2024-03-07", "TARIFA BANCARIA", "-12.50"),
        ]
        assert parser.last_mapping == ColumnMapping(date=0, amount=2, name=1)

    def test_excludes_header_and_zero_balance_rows(self, parser):
        """Test the header and the 0,00 balance line are excluded."""
        parser.parse(document(STATEMENT_ROWS))
        stats = parser.last_stats
        assert stats.rows_total == 5
        assert stats.rows_accepted == 3
        assert stats.rows_excluded == 2

    def test_metadata(self, parser):
        """Test drafts keep the original cells and the expense flag."""
        drafts = parser.parse(document(STATEMENT_ROWS))
        assert drafts[0].source_row_index == 1
        assert drafts[0].metadata["original_name"] == "PIX RECEBIDO JOAO DA SILVA"
        assert drafts[0].metadata["original_amount"] == "150,00"
        assert drafts[0].metadata["is_expense"] is False
        assert drafts[2].metadata["is_expense"] is True

    def test_is_deterministic(self, parser):
        """Test the same rows always give the same drafts."""
        first = parser.parse(document(STATEMENT_ROWS))
        second = TabularParser().parse(document(STATEMENT_ROWS))
        assert first == second

    def test_control_rows_are_flagged_not_excluded(self, parser):
        """Test balance rows with a real amount are kept and counted."""
        rows = [
            ["Data", "Descrição", "Valor"],
            ["05/03/2024", "PIX RECEBIDO ANA PAULA", "50,00"],
            ["06/03/2024", "SALDO ANTERIOR", "100,00"],
        ]
        drafts = parser.parse(document(rows))

        assert len(drafts) == 2
        assert parser.last_stats.control_rows == 1
        assert drafts[1].metadata["is_control_row"] is True
        assert drafts[0].metadata["is_control_row"] is False

    def test_ignore_keywords(self):
        """Test configured keywords are stripped from descriptions."""
        parser = TabularParser(ignore_keywords=["OLIVEIRA"])
        drafts = parser.parse(document(STATEMENT_ROWS))
        assert drafts[1].raw_description == "MARIA"

    def test_no_usable_columns(self, parser):
        """Test a table without dates and amounts yields nothing."""
        assert parser.parse(document([["a", "b"], ["c", "d"]])) == []
        assert parser.last_stats.rows_excluded == 2
        assert parser.last_mapping.is_usable is False

    def test_empty_document(self, parser):
        """Test empty input is not an error."""
        assert parser.parse(document([])) == []
        assert parser.last_mapping is None

    def test_dot_decimal_statement_with_document_numbers(self, parser):
        """Test amounts come from the amount column, not the document number."""
        rows = [
            ["01/03/2024", "PIX RECEBIDO JOAO SILVA", "150.00", "4521"],
            ["02/03/2024", "PIX RECEBIDO ANA PAULA", "80.50", "4522"],
            ["03/03/2024", "PIX RECEBIDO CARLOS LIMA", "200.00", "4523"],
        ]
        drafts = parser.parse(document(rows))

        assert parser.last_mapping == ColumnMapping(date=0, amount=2, name=1)
        assert [d.raw_amount for d in drafts] == ["150.00", "80.50", "200.00"]

    def test_cancellation(self, parser):
        """Test the cancel check is honoured between rows."""
        with pytest.raises(OperationCancelled):
            parser.parse(document(STATEMENT_ROWS), cancel_check=lambda: True)


class TestTextLines:
    """Tests for line splitting and the line parser."""

    def test_split_line(self):
        """Test date, description and amounts are separated."""
        assert split_line("05/03 PIX JOAO R$ 150,00 1.150,00") == (
            "05/03",
            "PIX JOAO",
            ["R$ 150,00", "1.150,00"],
        )

    def test_split_line_detached_sign(self):
        """Test a lone sign is attached to the following amount."""
        assert split_line("07/03 TARIFA - 12,50") == ("07/03", "TARIFA", ["- 12,50"])

    def test_split_line_currency_without_amount(self):
        """Test a dangling currency marker stays in the description."""
        assert split_line("PAGO R$ FIM") == ("", "PAGO R$ FIM", [])

    def test_lines_to_rows_pads(self):
        """Test rows share the width of the line with most amounts."""
        rows = lines_to_rows(["05/03 A 1,00", "", "06/03 B 2,00 3,00"])
        assert rows == [["05/03", "A", "1,00", ""], ["06/03", "B", "2,00", "3,00"]]

    def test_parses_pdf_lines(self, statement_lines):
        """Test PDF lines go through column discovery like a table."""
        parser = TextLineParser()
        drafts = parser.parse(document(statement_lines, FileType.PDF, "extrato.pdf"))

        assert [(d.raw_date, d.raw_description, d.raw_amount) for d in drafts] == [
            ("2024-03-05", "JOAO DA SILVA", "150.00"),
            ("2024-03-06", "MARIA OLIVEIRA", "200.00"),
            ("2024-03-07", "TARIFA BANCARIA", "-12.50"),
        ]
        assert parser.last_stats.rows_excluded == 2
        assert parser.last_mapping.amount == 2

    def test_parses_plain_text(self, statement_lines):
        """Test a text document is split into lines first."""
        text = "\n".join(statement_lines)
        drafts = TextLineParser().parse(document(text, FileType.TXT, "extrato.txt"))
        assert len(drafts) == 3
        assert drafts[0].raw_date == "2024-03-05"


class TestOfxParser:
    """Tests for OfxParser."""

    @pytest.fixture
    def drafts(self, statement_ofx):
        parser = OfxParser()
        text = statement_ofx.data.decode("utf-8")
        result = parser.parse(document(text, FileType.OFX, "extrato.ofx"))
        return parser, result

    def test_parses_blocks(self, drafts):
        """Test MEMO is preferred over NAME and blocks without date are dropped."""
        _, result = drafts
        assert [(d.raw_date, d.raw_description, d.raw_amount) for d in result] == [
            ("2024-03-05", "PIX RECEBIDO JOAO DA SILVA", "150.00"),
            ("2024-03-07", "TARIFA", "-12.50"),
            ("2024-03-08", "Sem descrição", "75.00"),
        ]

    def test_stats(self, drafts):
        """Test dropped blocks are counted as excluded."""
        parser, _ = drafts
        assert parser.last_stats.rows_total == 4
        assert parser.last_stats.rows_excluded == 1

    def test_metadata(self, drafts):
        """Test the transaction type and raw values are kept."""
        _, result = drafts
        assert result[0].metadata["type"] == "CREDIT"
        assert result[1].metadata["is_expense"] is True
        assert result[1].metadata["original_amount"] == "-12,50"

    def test_xml_flavour(self):
        """Test closed leaf tags parse the same way."""
        text = (
            "<OFX><STMTTRN><DTPOSTED>20240101</DTPOSTED><TRNAMT>10.00</TRNAMT>"
            "<MEMO>OFERTA</MEMO><MEMO>IGNORED</MEMO></STMTTRN></OFX>"
        )
        result = OfxParser().parse(document(text, FileType.OFX, "a.ofx"))
        assert len(result) == 1
        assert result[0].raw_description == "OFERTA"

    def test_tokenize(self):
        """Test tags are upper-cased and closing tags are flagged."""
        assert list(tokenize("<a>1<B>2</B>")) == [
            OfxToken("A", "1"),
            OfxToken("B", "2"),
            OfxToken("B", "", closing=True),
        ]

    def test_ofx_amount(self):
        """Test dot decimals, lone comma decimals and garbage."""
        assert ofx_amount("-50.00") == "-50.00"
        assert ofx_amount("-50,00") == "-50.00"
        assert ofx_amount("100") == "100.00"
        assert ofx_amount("abc") == ""


class TestNormalizer:
    """Tests for normalize()."""

    def test_converts_drafts(self):
        """Test drafts become three-field transactions in order."""
        drafts = [
            TransactionDraft("2024-03-05", "JOAO DA SILVA", "150.00", 1),
            TransactionDraft("2024-03-07", "TARIFA", "-12.50", 3),
        ]
        assert normalize(drafts) == [
            NormalizedTransaction("2024-03-05", "JOAO DA SILVA", 150.0),
            NormalizedTransaction("2024-03-07", "TARIFA", -12.5),
        ]

    def test_skips_malformed_drafts(self):
        """Test drafts without the final shape are dropped."""
        drafts = [
            TransactionDraft("05/03/2024", "JOAO", "1.00", 0),
            TransactionDraft("2024-03-05", "J", "1.00", 1),
            TransactionDraft("2024-03-05", "JOAO", "x", 2),
            TransactionDraft("2024-03-05", "JOAO", "1.00", 3),
        ]
        assert normalize(drafts) == [NormalizedTransaction("2024-03-05", "JOAO", 1.0)]
