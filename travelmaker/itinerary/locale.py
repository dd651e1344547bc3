"""Currency and emoji lookup tables keyed on location text."""

from travelmaker.models.common import CurrencyInfo
from travelmaker.models.trip import Trip

HOME_CURRENCY = CurrencyInfo(code="TWD", symbol="NT$", name="New Taiwan Dollar")

CURRENCY_SYMBOLS: dict[str, tuple[str, str]] = {
    "TWD": ("NT$", "New Taiwan Dollar"),
    "JPY": ("¥", "Japanese Yen"),
    "KRW": ("₩", "South Korean Won"),
    "THB": ("฿", "Thai Baht"),
    "USD": ("$", "US Dollar"),
    "EUR": ("€", "Euro"),
    "GBP": ("£", "British Pound"),
    "SGD": ("S$", "Singapore Dollar"),
    "HKD": ("HK$", "Hong Kong Dollar"),
    "CNY": ("¥", "Chinese Yuan"),
    "AUD": ("A$", "Australian Dollar"),
    "CAD": ("C$", "Canadian Dollar"),
    "NZD": ("NZ$", "New Zealand Dollar"),
    "CHF": ("CHF", "Swiss Franc"),
    "MYR": ("RM", "Malaysian Ringgit"),
    "IDR": ("Rp", "Indonesian Rupiah"),
    "VND": ("₫", "Vietnamese Dong"),
    "PHP": ("₱", "Philippine Peso"),
}

# Checked in order; first keyword hit wins
LOCATION_CURRENCY_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    (
        "EUR",
        (
            "法", "德", "義", "西班牙", "荷", "比利時", "葡萄牙", "希臘", "奧地利",
            "愛爾蘭", "芬蘭", "paris", "berlin", "rome", "madrid", "amsterdam", "brussels",
        ),
    ),
    ("JPY", ("日", "東京", "大阪", "japan", "tokyo")),
    ("KRW", ("韓", "首爾", "korea", "seoul")),
    ("THB", ("泰", "曼谷", "thailand", "bangkok")),
    ("USD", ("美", "紐約", "洛杉磯", "usa", "new york")),
    ("GBP", ("英", "倫敦", "uk", "london")),
    ("SGD", ("新加坡", "singapore")),
    ("HKD", ("香港", "hong kong")),
]

LOCATION_EMOJI_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    ("🇯🇵", ("日本", "japan")),
    ("🇰🇷", ("韓", "korea")),
    ("🇹🇭", ("泰", "thailand")),
    ("🇹🇼", ("台灣", "taiwan")),
    ("🇭🇰", ("香港", "hong kong")),
    ("🇸🇬", ("新加坡", "singapore")),
    ("🇺🇸", ("美國", "usa", "america")),
    ("🇫🇷", ("法", "france")),
    ("🇩🇪", ("德", "germany")),
    ("🇮🇹", ("義", "italy")),
    ("🇪🇸", ("西班牙", "spain")),
    ("🇬🇧", ("英", "uk", "britain")),
    ("🇳🇱", ("荷蘭", "netherlands")),
    ("🇨🇭", ("瑞士", "switzerland")),
    ("🇦🇺", ("澳", "australia")),
    ("🇨🇦", ("加拿大", "canada")),
    ("🗼", ("東京", "tokyo", "巴黎", "paris")),
    ("🏰", ("倫敦", "london")),
    ("🗽", ("紐約", "new york")),
    ("🌷", ("阿姆斯特丹", "amsterdam")),
    ("🏛️", ("羅馬", "rome")),
    ("🚤", ("威尼斯", "venice")),
    ("🌉", ("雪梨", "sydney")),
    ("🏗️", ("杜拜", "dubai")),
    ("🌆", ("首爾", "seoul")),
    ("🕌", ("曼谷", "bangkok")),
]

DEFAULT_EMOJI = "📍"


def currency_info(code: str | None) -> CurrencyInfo:
    """Symbol and name for a code; unknown codes display as themselves."""
    if not code:
        return HOME_CURRENCY
    code = code.upper()
    if code in CURRENCY_SYMBOLS:
        symbol, name = CURRENCY_SYMBOLS[code]
        return CurrencyInfo(code=code, symbol=symbol, name=name)
    return CurrencyInfo(code=code, symbol=code, name=code)


def guess_local_currency(location: str | None) -> CurrencyInfo:
    """Keyword guess of the local currency, home currency when nothing matches."""
    if not location:
        return HOME_CURRENCY
    loc = location.lower()
    for code, keywords in LOCATION_CURRENCY_KEYWORDS:
        if any(k in loc for k in keywords):
            return currency_info(code)
    return HOME_CURRENCY


def resolve_display_currency(trip: Trip) -> CurrencyInfo:
    """Currency to display costs in, most specific source first.

    1. Full currency fields stored on the trip
    2. A stored code alone, via the symbol table
    3. Keyword guess from the trip location
    4. Home currency
    """
    if trip.currency_code and trip.currency_symbol:
        return CurrencyInfo(
            code=trip.currency_code,
            symbol=trip.currency_symbol,
            name=trip.currency_name or trip.currency_code,
        )
    if trip.currency_code:
        return currency_info(trip.currency_code)
    return guess_local_currency(trip.location)


def location_emoji(location: str | None) -> str:
    """Display emoji for a trip location."""
    if not location:
        return DEFAULT_EMOJI
    loc = location.lower()
    for emoji, keywords in LOCATION_EMOJI_KEYWORDS:
        if any(k in loc for k in keywords):
            return emoji
    return DEFAULT_EMOJI
