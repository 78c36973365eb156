"""Deterministic demo data for the Mondial 2030 ticket fraud service.

Generates host stadiums, matches, users and tickets with planted transfer histories:
- untouched tickets and slow, fair-priced resales (LOW)
- scalped tickets resold within the hour at 2x-4x face value
- circular chains where a ticket returns to an earlier recipient
- bursts of hand-offs a few hours apart
- resale rings combining all of the above

Running this module writes the data set to ``demo_data.json`` next to it.
"""
import json
import random
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional

SEED = 2030
OUTPUT_DIR = Path(__file__).parent

FIRST_NAMES = [
    "youssef", "lucia", "hakim", "ines", "diego", "amina", "rafael", "salma",
    "tiago", "nadia", "pablo", "zineb", "joao", "carmen", "omar", "beatriz",
]

LAST_NAMES = [
    "benali", "garcia", "ferreira", "el idrissi", "martinez", "silva",
    "alaoui", "lopez", "santos", "tazi", "moreno", "costa",
]

ZONES = {
    "STANDARD": ("North Stand", 85.0),
    "PREMIUM": ("East Stand", 220.0),
    "VIP": ("West Stand", 480.0),
    "HOSPITALITY": ("Lounge", 950.0),
}

STADIUMS = [
    ("Grand Stade Hassan II", "Casablanca", "Morocco", 115000, 2028, True),
    ("Santiago Bernabeu", "Madrid", "Spain", 83186, 1947, True),
    ("Estadio da Luz", "Lisbon", "Portugal", 64642, 2003, False),
    ("Stade Ibn Batouta", "Tangier", "Morocco", 75600, 2011, False),
]

# (home, away, stadium id, days after opening, phase, base price)
MATCHES = [
    ("Morocco", "Brazil", 1, 0, "GROUP_STAGE", 85.0),
    ("Spain", "Japan", 2, 1, "GROUP_STAGE", 85.0),
    ("Portugal", "Senegal", 3, 2, "GROUP_STAGE", 85.0),
    ("Argentina", "Egypt", 4, 3, "GROUP_STAGE", 85.0),
    ("France", "Uruguay", 2, 20, "QUARTER_FINAL", 220.0),
    ("Morocco", "Spain", 1, 31, "FINAL", 480.0),
]

MATCH_IDS = list(range(1, len(MATCHES) + 1))

OPENING_MATCH = datetime(2030, 6, 13, 20, 0, 0)

BASE_DATE = datetime(2030, 3, 1, 10, 0, 0)

USER_COUNT = 16


def _gen_stadiums() -> List[Dict[str, Any]]:
    return [
        {
            "id": i,
            "name": name,
            "city": city,
            "country": country,
            "capacity": capacity,
            "year_built": year_built,
            "is_main_venue": main,
        }
        for i, (name, city, country, capacity, year_built, main) in enumerate(STADIUMS, start=1)
    ]


def _gen_matches() -> List[Dict[str, Any]]:
    matches = []
    for i, (home, away, stadium_id, day, phase, base_price) in enumerate(MATCHES, start=1):
        matches.append({
            "id": i,
            "home_team": home,
            "away_team": away,
            "match_date": (OPENING_MATCH + timedelta(days=day)).isoformat(),
            "stadium_id": stadium_id,
            "phase": phase,
            "base_price": base_price,
            "total_seats": STADIUMS[stadium_id - 1][3],
        })
    return matches


def _gen_users() -> List[Dict[str, Any]]:
    users = []
    for i in range(1, USER_COUNT + 1):
        first = FIRST_NAMES[(i - 1) % len(FIRST_NAMES)]
        last = random.choice(LAST_NAMES)
        users.append({
            "id": i,
            "username": f"{first}.{last.replace(' ', '')}{i}",
            "name": f"{first.title()} {last.title()}",
            "created_at": (BASE_DATE - timedelta(days=30 - i)).isoformat(),
        })
    return users


def _other_user(*exclude: int) -> int:
    while True:
        uid = random.randint(1, USER_COUNT)
        if uid not in exclude:
            return uid


class _Builder:
    def __init__(self) -> None:
        self.tickets: List[Dict[str, Any]] = []
        self.transfers: List[Dict[str, Any]] = []

    def ticket(self, category: Optional[str] = None) -> Dict[str, Any]:
        category = category or random.choice(list(ZONES))
        zone, price = ZONES[category]
        ticket_id = len(self.tickets) + 1
        ticket = {
            "id": ticket_id,
            "seat_number": f"{random.choice('ABCDEFGH')}{random.randint(1, 40)}",
            "seat_zone": zone,
            "price": price,
            "category": category,
            "status": "ACTIVE",
            "transfer_count": 0,
            "purchase_date": (BASE_DATE + timedelta(days=random.randint(0, 20), minutes=random.randint(0, 600))).isoformat(),
            "last_transfer_date": None,
            "owner_id": random.randint(1, USER_COUNT),
            "match_id": random.choice(MATCH_IDS),
        }
        self.tickets.append(ticket)
        return ticket

    def transfer(
        self,
        ticket: Dict[str, Any],
        to_user: int,
        after: timedelta,
        price: Optional[float] = None,
        notes: Optional[str] = None,
    ) -> None:
        previous = ticket["last_transfer_date"] or ticket["purchase_date"]
        when = datetime.fromisoformat(previous) + after
        self.transfers.append({
            "ticket_id": ticket["id"],
            "from_user_id": ticket["owner_id"],
            "to_user_id": to_user,
            "transfer_date": when.isoformat(),
            "transfer_price": round(price, 2) if price is not None else None,
            "notes": notes,
        })
        ticket["owner_id"] = to_user
        ticket["transfer_count"] += 1
        ticket["last_transfer_date"] = when.isoformat()


def generate_demo_data() -> Dict[str, List[Dict[str, Any]]]:
    random.seed(SEED)
    users = _gen_users()
    b = _Builder()

    # 1. Clean tickets, never transferred
    for _ in range(14):
        b.ticket()

    # 2. One slow resale at or below face value
    for _ in range(6):
        t = b.ticket()
        b.transfer(t, _other_user(t["owner_id"]), timedelta(days=random.randint(4, 12)),
                   price=t["price"] * random.uniform(0.8, 1.1), notes="Resale to friend")

    # 3. Scalped: resold within the hour at a heavy markup
    for _ in range(5):
        t = b.ticket(random.choice(["VIP", "PREMIUM"]))
        b.transfer(t, _other_user(t["owner_id"]), timedelta(minutes=random.randint(10, 55)),
                   price=t["price"] * random.uniform(2.2, 4.0))

    # 4. Circular: ticket comes back to an earlier recipient
    for _ in range(4):
        t = b.ticket()
        first = _other_user(t["owner_id"])
        second = _other_user(t["owner_id"], first)
        b.transfer(t, first, timedelta(hours=random.randint(2, 8)), price=t["price"] * 1.3)
        b.transfer(t, second, timedelta(hours=random.randint(2, 8)), price=t["price"] * 1.6)
        b.transfer(t, first, timedelta(hours=random.randint(2, 8)), price=t["price"] * 2.1)

    # 5. Bursts: several distinct hand-offs hours apart
    for _ in range(4):
        t = b.ticket()
        seen = [t["owner_id"]]
        for _ in range(random.randint(3, 5)):
            nxt = _other_user(*seen)
            seen.append(nxt)
            b.transfer(t, nxt, timedelta(hours=random.randint(1, 10)))

    # 6. Resale rings: marked-up hand-offs minutes apart, looping back
    for _ in range(3):
        t = b.ticket("VIP")
        ring = [_other_user(t["owner_id"])]
        ring.append(_other_user(t["owner_id"], *ring))
        ring.append(_other_user(t["owner_id"], *ring))
        b.transfer(t, ring[0], timedelta(minutes=5), price=t["price"] * 3.5)
        b.transfer(t, ring[1], timedelta(minutes=8), price=t["price"] * 3.8)
        b.transfer(t, ring[2], timedelta(minutes=6), price=t["price"] * 4.0)
        b.transfer(t, ring[0], timedelta(minutes=9), price=t["price"] * 4.2)

    # A few used and cancelled tickets
    for status in ("USED", "USED", "CANCELLED"):
        t = b.ticket("STANDARD")
        t["status"] = status

    return {
        "stadiums": _gen_stadiums(),
        "matches": _gen_matches(),
        "users": users,
        "tickets": b.tickets,
        "transfers": b.transfers,
    }


def main():
    data = generate_demo_data()
    path = OUTPUT_DIR / "demo_data.json"
    with open(path, "w") as f:
        json.dump(data, f, indent=2)

    print(f"Generated {len(data['stadiums'])} stadiums, {len(data['matches'])} matches, "
          f"{len(data['users'])} users, {len(data['tickets'])} tickets, "
          f"{len(data['transfers'])} transfers -> {path}")

    counts: Dict[int, int] = {}
    for t in data["tickets"]:
        counts[t["transfer_count"]] = counts.get(t["transfer_count"], 0) + 1
    print("\nTickets by transfer count:")
    for n, c in sorted(counts.items()):
        print(f"  {n}: {c}")


if __name__ == "__main__":
    main()
