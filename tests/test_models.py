"""Tests for receipt data models and parser configuration."""

import json

import pytest

from receipt_text_parser.core.config import ParserConfig, DEFAULT_CONFIG, load_parser_config
from receipt_text_parser.core.models import LineItem, ParsedReceipt, StoredReceipt, ReceiptFilter

REQUIRED_KEYS = {
    "company_name", "merchant_name", "address", "date", "time", "currency",
    "subtotal", "tax_amount", "total", "items", "raw_text",
}


@pytest.fixture
def receipt():
    return ParsedReceipt(
        merchant_name="PLUS Schouteten",
        address="Main Street 12",
        date="09-09-2025",
        time="14:32",
        currency="EUR",
        subtotal="12.79",
        tax_amount="1.06",
        total="13.99",
        items=[LineItem("ENERGYDRINK 8-PACK", "12.79"), LineItem("Statiegeld", "1.20")],
        raw_text="PLUS Schouteten\n...",
    )


class TestParsedReceipt:
    def test_to_dict_keys(self, receipt):
        data = receipt.to_dict()
        assert set(data) == REQUIRED_KEYS
        assert data["company_name"] == data["merchant_name"] == "PLUS Schouteten"
        assert data["items"][0] == {"name": "ENERGYDRINK 8-PACK", "price": "12.79"}

    def test_to_dict_is_json_serializable(self, receipt):
        assert json.loads(json.dumps(receipt.to_dict()))["total"] == "13.99"

    def test_aliases(self, receipt):
        data = receipt.to_dict(include_aliases=True)
        assert REQUIRED_KEYS <= set(data)
        assert data["dates"] == ["09-09-2025"]
        assert data["times"] == ["14:32"]
        assert data["currencies"] == ["EUR"]
        assert data["total_amount"] == data["amount_paid"] == "13.99"
        assert data["subtotal_amount"] == "12.79"
        assert data["tax_vat"] == [{"amount": "1.06"}]
        assert data["change"] == "0.00"
        assert data["transaction_status"] == "Completed"
        for key in ("phone", "transaction_id", "payment_method", "card_number"):
            assert data[key] == ""

    def test_aliases_empty_record(self):
        data = ParsedReceipt().to_dict(include_aliases=True)
        assert data["dates"] == []
        assert data["tax_vat"] == []
        assert data["currencies"] == [""]
        assert data["transaction_status"] == "Completed"

    def test_from_dict(self, receipt):
        assert ParsedReceipt.from_dict(receipt.to_dict()) == receipt

    def test_from_dict_company_name_fallback(self):
        rebuilt = ParsedReceipt.from_dict({"company_name": "ACME", "items": None})
        assert rebuilt.merchant_name == "ACME"
        assert rebuilt.items == []

    def test_from_dict_empty_merchant_not_replaced_by_company_name(self):
        rebuilt = ParsedReceipt.from_dict({"merchant_name": "", "company_name": "OCR NOISE"})
        assert rebuilt.merchant_name == ""


class TestStoredReceipt:
    def test_to_dict_merges_metadata(self, receipt):
        stored = StoredReceipt(id=7, user_id=1, processed_at="2025-09-10T10:00:00+00:00",
                               source_file="IMG_2930.jpeg", file_hash="abc", receipt=receipt)
        data = stored.to_dict()
        assert data["id"] == 7
        assert data["user_id"] == 1
        assert data["source_file"] == "IMG_2930.jpeg"
        assert data["merchant_name"] == "PLUS Schouteten"


class TestReceiptFilter:
    def test_defaults(self):
        f = ReceiptFilter()
        assert f.sort_key == "processed_at"
        assert f.descending is True
        assert f.limit == 100

    def test_invalid_sort_key(self):
        with pytest.raises(ValueError):
            ReceiptFilter(sort_key="vendor")

    def test_negative_limit(self):
        with pytest.raises(ValueError):
            ReceiptFilter(limit=-1)


class TestParserConfig:
    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_parser_config(tmp_path / "nope.json") == DEFAULT_CONFIG

    def test_overrides(self, tmp_path):
        path = tmp_path / "parser.json"
        path.write_text(json.dumps({
            "currency_symbols": {"£": "GBP", "¥": "JPY"},
            "default_currency": "EUR",
            "address_window": [1, 5],
            "reject_keywords": ["total", "cash"],
        }), encoding="utf-8")
        config = load_parser_config(path)
        assert config.currency_symbols == {"£": "GBP", "¥": "JPY"}
        assert config.default_currency == "EUR"
        assert config.address_window == (1, 5)
        assert config.reject_keywords == ("total", "cash")

    def test_unknown_key(self, tmp_path):
        path = tmp_path / "parser.json"
        path.write_text('{"currency": "EUR"}', encoding="utf-8")
        with pytest.raises(ValueError, match="currency"):
            load_parser_config(path)

    @pytest.mark.parametrize("payload", [
        {"address_window": 5},
        {"address_window": [1]},
        {"address_window": ["a", 4]},
        {"default_currency": 3},
        {"min_item_name_length": "3"},
        {"reject_keywords": [1, 2]},
    ])
    def test_wrongly_typed_value(self, tmp_path, payload):
        path = tmp_path / "parser.json"
        path.write_text(json.dumps(payload), encoding="utf-8")
        with pytest.raises(ValueError):
            load_parser_config(path)

    def test_wrong_type_names_key(self, tmp_path):
        path = tmp_path / "parser.json"
        path.write_text('{"address_window": 5}', encoding="utf-8")
        with pytest.raises(ValueError, match="address_window"):
            load_parser_config(path)

    def test_top_level_must_be_object(self, tmp_path):
        path = tmp_path / "parser.json"
        path.write_text("[1, 4]", encoding="utf-8")
        with pytest.raises(ValueError, match="JSON object"):
            load_parser_config(path)

    def test_invalid_window(self):
        with pytest.raises(ValueError):
            ParserConfig(address_window=(3, 1))

    def test_multi_char_symbol_rejected(self):
        with pytest.raises(ValueError):
            ParserConfig(currency_symbols={"Kč": "CZK"})
