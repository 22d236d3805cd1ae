from pdf.statement_parsers import (
    FIELDS,
    TableStatementParser,
    TokenStatementParser,
    default_registry,
)

BG_HEADER = [
    "Време на изпълнение",
    "Инструмент",
    "ISIN",
    "Валута на поръчката",
    "Посока",
    "Количество",
    "Цена",
    "Стойност на транзакцията",
    "Валута на транзакцията",
    "Обменен курс",
    "Печалба/загуба",
    "Общо",
]

ROW_1 = [
    "2024-03-15 14:30:05", "AAPL", "US0378331005", "USD", "Продай", "2", "171.50",
    "343.00", "USD", "1.8012", "25.40", "343.00",
]
ROW_2 = [
    "2024-03-16 10:01:00", "VOD", "GB00BH4HKS39", "GBX", "Купи", "100", "70.5",
    "7050", "GBX", "", "0", "7050",
]


def test_header_mapping_bulgarian():
    mapping = TableStatementParser().header_mapping(BG_HEADER)

    assert mapping[0] == "execution_time"
    assert mapping[3] == "order_currency"
    assert mapping[8] == "transaction_currency"
    assert mapping[10] == "profit_loss"
    assert mapping[11] == "total"
    assert len(set(mapping.values())) == 12


def test_header_mapping_english_synonyms():
    header = ["Time", "Ticker", "Side", "Quantity", "Price / share", "Currency", "Result", "Total"]
    mapping = TableStatementParser().header_mapping(header)

    assert list(mapping.values()) == [
        "execution_time", "instrument", "direction", "quantity", "price",
        "transaction_currency", "profit_loss", "total",
    ]


def test_table_rows_with_continuation_and_noise():
    extracted = {
        "page_tables": [
            [[BG_HEADER, ROW_1, ["Общо за периода", "", "", "", "", "", "", "", "", "", "25.40", ""]]],
            [[ROW_2]],
        ]
    }

    rows = TableStatementParser().normalize_rows(extracted)

    assert [r["instrument"] for r in rows] == ["AAPL", "VOD"]
    assert [r["page_index"] for r in rows] == [0, 1]
    assert rows[0]["profit_loss"] == "25.40"
    assert rows[1]["exchange_rate"] == ""


def test_table_without_required_headers_is_ignored():
    extracted = {"page_tables": [[[["Name", "Address"], ["x", "y"]]]]}

    assert TableStatementParser().normalize_rows(extracted) == []


def test_token_row_heuristics():
    tokens = [
        "2024-03-15", "14:30:05", "AAPL", "US0378331005", "USD", "Продай",
        "2", "171.50", "343.00", "USD", "1.8012", "25.40", "343.00",
    ]

    row = TokenStatementParser().parse_tokens(tokens)

    assert row["execution_time"] == "2024-03-15 14:30:05"
    assert row["instrument"] == "AAPL"
    assert row["isin"] == "US0378331005"
    assert row["direction"] == "Продай"
    assert row["order_currency"] == "USD"
    assert row["transaction_currency"] == "USD"
    assert row["quantity"] == "2"
    assert row["price"] == "171.50"
    assert row["transaction_value"] == "343.00"
    assert row["exchange_rate"] == "1.8012"
    assert row["profit_loss"] == "25.40"
    assert row["total"] == "343.00"


def test_token_row_without_exchange_rate():
    tokens = ["15.03.2024", "09:00", "VOD", "GBX", "Купи", "100", "70.5", "7050", "GBX", "-12,5", "7050"]

    row = TokenStatementParser().parse_tokens(tokens)

    assert row["execution_time"] == "15.03.2024 09:00"
    assert row["transaction_currency"] == "GBX"
    assert row["transaction_value"] == "7050"
    assert row["exchange_rate"] == ""
    assert row["profit_loss"] == "-12,5"


def test_token_rows_skip_non_transactions():
    parser = TokenStatementParser()

    assert parser.parse_tokens(["Извлечение", "от", "сметка"]) is None
    assert parser.parse_tokens(["2024-03-15", "14:30", "Page", "1"]) is None


def test_registry_falls_back_to_tokens():
    extracted = {
        "page_tables": [[[["Name", "Address"], ["x", "y"]]]],
        "page_rows": [[["2024-03-15", "14:30", "AAPL", "USD", "Sell", "1", "10", "10", "USD", "1", "10"]]],
    }

    parser, rows = default_registry().parse(extracted)

    assert parser.name == "TOKENS"
    assert len(rows) == 1
    assert rows[0]["page_index"] == 0


def test_registry_prefers_tables():
    extracted = {
        "page_tables": [[[BG_HEADER, ROW_1]]],
        "page_rows": [[ROW_1]],
    }

    parser, rows = default_registry().parse(extracted)

    assert parser.name == "TABLE"
    assert len(rows) == 1


def test_registry_nothing_found():
    parser, rows = default_registry().parse({"page_tables": [], "page_rows": [[["hello"]]]})

    assert parser is None
    assert rows == []


def test_cash_movements_without_direction_are_skipped():
    extracted = {
        "page_rows": [
            [
                ["2024-03-15", "14:30:05", "AAPL", "USD", "Продай", "2", "171.50", "343.00", "USD", "25.40", "343.00"],
                ["2024-03-16", "10:00:00", "Депозит", "100.00", "EUR"],
                ["2024-03-16", "11:00:00", "Dividend", "AAPL", "0.48", "USD"],
                ["2024-03-17", "09:15:00", "MSFT", "USD", "Sell", "1", "410", "410", "USD", "-3.10", "410"],
            ]
        ]
    }

    rows = TokenStatementParser().normalize_rows(extracted)

    assert [r["instrument"] for r in rows] == ["AAPL", "MSFT"]
    assert TokenStatementParser().parse_tokens(["2024-03-16", "10:00:00", "Депозит", "100.00", "EUR"]) is None


def test_rows_carry_every_canonical_field():
    table_rows = TableStatementParser().normalize_rows(
        {"page_tables": [[[["Time", "Side", "Result"], ["2024-03-15 14:30", "Sell", "5"]]]]}
    )
    token_row = TokenStatementParser().parse_tokens(["2024-03-15", "14:30", "Sell", "5", "5"])

    assert [k for k in table_rows[0] if k != "page_index"] == list(FIELDS)
    assert list(token_row) == list(FIELDS)
    assert table_rows[0]["isin"] == ""
    assert token_row["transaction_currency"] == ""
