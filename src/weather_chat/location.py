"""Best-effort location extraction and weather-intent detection.

Both helpers are plain string heuristics. They misfire on place names that
are substrings of other words and on free-form phrasing; callers treat the
result as a guess.
"""
from __future__ import annotations

from typing import List, Optional, Sequence

WEATHER_KEYWORDS = ("weather", "temperature", "forecast", "rain", "sunny", "cloudy", "climate")

TRIGGER_WORDS = ("in", "at", "for", "weather", "from", "of")

_PUNCTUATION = ("?", ".", "!")

GAZETTEER: Sequence[str] = (
    "tokyo", "london", "paris", "new york", "los angeles", "chicago", "houston", "phoenix",
    "philadelphia", "san antonio", "san diego", "dallas", "san jose", "austin", "jacksonville",
    "fort worth", "columbus", "charlotte", "san francisco", "indianapolis", "seattle", "denver",
    "washington", "boston", "el paso", "nashville", "detroit", "oklahoma city", "portland",
    "las vegas", "memphis", "louisville", "baltimore", "milwaukee", "albuquerque", "tucson",
    "fresno", "sacramento", "mesa", "kansas city", "atlanta", "long beach", "colorado springs",
    "raleigh", "miami", "virginia beach", "omaha", "oakland", "minneapolis", "tulsa", "arlington",
    "tampa", "new orleans", "wichita", "cleveland", "bakersfield", "aurora", "anaheim", "honolulu",
    "santa ana", "corpus christi", "riverside", "lexington", "stockton", "toledo", "st. paul",
    "newark", "greensboro", "plano", "henderson", "lincoln", "buffalo", "jersey city", "chula vista",
    "fort wayne", "orlando", "st. petersburg", "chandler", "laredo", "norfolk", "durham", "madison",
    "lubbock", "irvine", "winston-salem", "glendale", "garland", "hialeah", "reno", "chesapeake",
    "gilbert", "baton rouge", "irving", "scottsdale", "north las vegas", "fremont", "boise",
    "richmond", "san bernardino", "birmingham", "spokane", "rochester", "des moines", "modesto",
    "fayetteville", "tacoma", "oxnard", "fontana", "montgomery", "moreno valley", "shreveport",
    "yonkers", "akron", "huntington beach", "little rock", "augusta", "amarillo", "mobile",
    "grand rapids", "salt lake city", "tallahassee", "huntsville", "grand prairie", "knoxville",
    "worcester", "newport news", "brownsville", "overland park", "santa clarita", "providence",
    "garden grove", "chattanooga", "oceanside", "jackson", "fort lauderdale", "santa rosa",
    "rancho cucamonga", "port st. lucie", "tempe", "ontario", "vancouver", "cape coral",
    "sioux falls", "springfield", "peoria", "pembroke pines", "elk grove", "salem", "lancaster",
    "corona", "eugene", "palmdale", "salinas", "pasadena", "fort collins", "hayward", "pomona",
    "cary", "rockford", "alexandria", "escondido", "mckinney", "joliet", "sunnyvale",
)


def is_weather_query(text: str) -> bool:
    lowered = text.lower()
    return any(k in lowered for k in WEATHER_KEYWORDS)


def _title_words(name: str) -> str:
    return " ".join(w[:1].upper() + w[1:] for w in name.split(" "))


def _gazetteer_match(lowered: str, gazetteer: Sequence[str]) -> Optional[str]:
    # First hit in list order; "las vegas" shadows "north las vegas".
    for city in gazetteer:
        if city in lowered:
            return city
    return None


def _positional_match(words: List[str]) -> Optional[str]:
    for i, word in enumerate(words):
        if word in TRIGGER_WORDS and i + 1 < len(words):
            location = words[i + 1]
            if i + 2 < len(words):
                nxt = words[i + 2]
                if len(nxt) > 2 and nxt not in _PUNCTUATION:
                    location += " " + nxt
            return location[:1].upper() + location[1:]
    return None


def extract_location(text: str, gazetteer: Sequence[str] = GAZETTEER) -> Optional[str]:
    """Guess a place name from free text, or return None.

    Known cities are matched as substrings of the lowercased text and returned
    title-cased. Otherwise the word after the first trigger word ("in", "at",
    "for", ...) is used, plus the word after it when that looks like part of
    the same name.
    """
    lowered = text.lower()
    city = _gazetteer_match(lowered, gazetteer)
    if city is not None:
        return _title_words(city)
    return _positional_match(lowered.split(" "))
