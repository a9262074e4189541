"""Static reference data for the simulated wallet: countries and their banks."""

COUNTRIES: list[dict[str, str]] = [
    {"code": "RU", "name": "Россия"},
    {"code": "KZ", "name": "Казахстан"},
    {"code": "UA", "name": "Украина"},
]

BANKS_BY_COUNTRY: dict[str, list[dict[str, str]]] = {
    "RU": [
        {"id": "sber", "name": "Сбербанк"},
        {"id": "tinkoff", "name": "Тинькофф"},
        {"id": "alfa", "name": "Альфа-Банк"},
    ],
    "KZ": [
        {"id": "kaspi", "name": "Kaspi Bank"},
        {"id": "halyk", "name": "Halyk Bank"},
    ],
    "UA": [
        {"id": "privat", "name": "ПриватБанк"},
        {"id": "mono", "name": "Monobank"},
    ],
}

# Card number shown to the user for a simulated topup transfer
MOCK_PAYMENT_DETAILS = "1234 5678 9101 1121"


def banks_for(country: str) -> list[dict[str, str]]:
    return BANKS_BY_COUNTRY.get(country.upper(), [])


def is_known_bank(bank_id: str, country: str | None = None) -> bool:
    if country is not None:
        return any(b["id"] == bank_id for b in banks_for(country))
    return any(b["id"] == bank_id for banks in BANKS_BY_COUNTRY.values() for b in banks)
