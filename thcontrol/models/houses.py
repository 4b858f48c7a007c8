"""
Seed house list.

Calle A: TH00A-TH33A plus TH35A and TH37A
Calle B: TH01B-TH32B
Calle C: odd numbers TH01C-TH23C
Calle P: TH01P-TH10P
"""

from thcontrol.models.condo import House

STREETS = ["Calle A", "Calle B", "Calle C", "Calle P"]


def _house(number: int, suffix: str, street: str) -> House:
    code = f"TH{number:02d}{suffix}"
    return House(id=code, name=code, owner="", street=street)


def initial_houses() -> list[House]:
    """Build the fixed house list used to seed new documents."""
    houses = [_house(n, "A", "Calle A") for n in range(0, 34)]
    houses += [_house(n, "A", "Calle A") for n in (35, 37)]
    houses += [_house(n, "B", "Calle B") for n in range(1, 33)]
    houses += [_house(n, "C", "Calle C") for n in range(1, 24, 2)]
    houses += [_house(n, "P", "Calle P") for n in range(1, 11)]
    return houses
