from typing import Optional

import pycountry


def iso2_to_country_name(code: Optional[str]) -> Optional[str]:
    """
    Convert ISO-2 country code (e.g. 'PT') to country name ('Portugal').
    Unknown codes give None.
    """
    if not code or len(code.strip()) != 2:
        return None

    try:
        country = pycountry.countries.get(alpha_2=code.strip().upper())
    except (KeyError, LookupError):
        return None
    return country.name if country else None


def display_location(city: Optional[str], country_code: Optional[str], fallback: str = "") -> str:
    """
    'LISBON', 'PT' -> 'Lisbon, Portugal'. Falls back to the raw code when the
    country is unknown, and to ``fallback`` when both parts are missing.
    """
    parts = []
    if city:
        parts.append(city.strip().title())
    if country_code:
        parts.append(iso2_to_country_name(country_code) or country_code.strip().upper())
    return ", ".join(parts) or fallback
