"""Nutrition lookup service.

Chain restaurants are mapped to a nutrition table ID (``R0000``..``R0094``).
Each table is a CSV file ``<ID>.csv`` in the nutrition data directory with a
header row and the columns:

    Item, Calories, Fat (g), Saturated Fat (g), Cholesterol (mg),
    Sodium (mg), Carbs (g), Fiber (g), Sugar (g), Protein (g)

Lookups are cached under the ``nutrition-by-name`` namespace keyed by the
normalized restaurant name (case and punctuation folded).
"""

import asyncio
import csv
import io
import logging
from pathlib import Path
from typing import Optional

from app.models import NutritionItem, RestaurantNutritionData
from app.services.cache import (
    NUTRITION_BY_NAME,
    CacheService,
    NamespacedCache,
    cached_lookup,
)
from app.utils.cache import normalize_restaurant_name

logger = logging.getLogger(__name__)


# Display name -> nutrition table ID
RESTAURANT_IDS = {
    "7 Eleven": "R0000",
    "Applebee's": "R0001",
    "Arby's": "R0002",
    "Auntie Anne's": "R0003",
    "BJ's Restaurant & Brewhouse": "R0004",
    "Baskin Robbins": "R0005",
    "Bob Evans": "R0006",
    "Bojangles": "R0007",
    "Bonefish Grill": "R0008",
    "Boston Market": "R0009",
    "Burger King": "R0010",
    "California Pizza Kitchen": "R0011",
    "Captain D's": "R0012",
    "Carl's Jr.": "R0013",
    "Carrabba's Italian Grill": "R0014",
    "Casey's General Store": "R0015",
    "Checkers Drive-In / Rally's": "R0016",
    "Chick-fil-A": "R0017",
    "Chili's": "R0019",
    "Chipotle": "R0020",
    "Chuck E. Cheese": "R0021",
    "Church's Chicken": "R0022",
    "Cici's Pizza": "R0023",
    "Culver's": "R0024",
    "Dairy Queen": "R0025",
    "Del Taco": "R0026",
    "Denny's": "R0027",
    "Dickey's Barbeque Pit": "R0028",
    "Domino's": "R0029",
    "Dunkin' Donuts": "R0030",
    "Einstein Bros": "R0031",
    "El Pollo Loco": "R0032",
    "Famous Dave's": "R0033",
    "Firehouse Subs": "R0034",
    "Five Guys": "R0035",
    "Friendly's": "R0036",
    "Frisch's Big Boy": "R0037",
    "Golden Corral": "R0038",
    "Hardee's": "R0039",
    "Hooters": "R0040",
    "IHOP": "R0041",
    "In-N-Out Burger": "R0042",
    "Jack in the Box": "R0043",
    "Jamba Juice": "R0044",
    "Jason's Deli": "R0045",
    "Jersey Mike's Subs": "R0046",
    "Joe's Crab Shack": "R0047",
    "KFC": "R0048",
    "Krispy Kreme": "R0049",
    "Krystal": "R0050",
    "Little Caesars": "R0051",
    "Long John Silver's": "R0052",
    "LongHorn Steakhouse": "R0053",
    "Marco's Pizza": "R0054",
    "McAlister's Deli": "R0055",
    "McDonald's": "R0056",
    "Moe's Southwest Grill": "R0057",
    "Noodles & Company": "R0058",
    "O'Charley's": "R0059",
    "Olive Garden": "R0060",
    "Outback Steakhouse": "R0061",
    "P.F. Chang's": "R0062",
    "Panda Express": "R0063",
    "Panera Bread": "R0064",
    "Papa John's": "R0065",
    "Papa Murphy's": "R0066",
    "Perkins": "R0067",
    "Pizza Hut": "R0068",
    "Popeyes": "R0069",
    "Potbelly Sandwich Shop": "R0070",
    "Qdoba": "R0071",
    "Quiznos": "R0072",
    "Red Lobster": "R0073",
    "Red Robin": "R0074",
    "Romano's Macaroni Grill": "R0075",
    "Round Table Pizza": "R0076",
    "Ruby Tuesday": "R0077",
    "Sbarro": "R0078",
    "Sheetz": "R0079",
    "Sonic": "R0080",
    "Starbucks": "R0081",
    "Steak 'n Shake": "R0082",
    "Subway": "R0083",
    "TGI Friday's": "R0084",
    "Taco Bell": "R0085",
    "The Capital Grille": "R0086",
    "Tim Hortons": "R0087",
    "Wawa": "R0088",
    "Wendy's": "R0089",
    "Whataburger": "R0090",
    "White Castle": "R0091",
    "Wingstop": "R0092",
    "Yard House": "R0093",
    "Zaxby's": "R0094",
}

# Extra spellings seen in OSM name tags
NAME_ALIASES = {
    "Dunkin": "R0030",
}

_IDS_BY_NORMALIZED_NAME = {
    normalize_restaurant_name(name): restaurant_id
    for name, restaurant_id in {**RESTAURANT_IDS, **NAME_ALIASES}.items()
}

_NAMES_BY_ID = {restaurant_id: name for name, restaurant_id in RESTAURANT_IDS.items()}

NUTRITION_COLUMNS = 10


class NutritionNotFoundError(LookupError):
    """Raised when no nutrition table exists for a restaurant."""


# Shorter inputs are too ambiguous to match inside a chain name
MIN_PARTIAL_MATCH_LENGTH = 3


def restaurant_id_for(restaurant_name: str) -> Optional[str]:
    """Return the nutrition table ID for a restaurant name, if it is a known chain.

    Names are compared after normalization. Without an exact match, a known
    chain name containing the input (or contained in it) is accepted,
    preferring the longest chain name.
    """
    normalized = normalize_restaurant_name(restaurant_name)
    if not normalized:
        return None

    restaurant_id = _IDS_BY_NORMALIZED_NAME.get(normalized)
    if restaurant_id is not None:
        return restaurant_id

    candidates = [
        known
        for known in _IDS_BY_NORMALIZED_NAME
        if known in normalized
        or (len(normalized) >= MIN_PARTIAL_MATCH_LENGTH and normalized in known)
    ]
    if not candidates:
        return None
    return _IDS_BY_NORMALIZED_NAME[max(candidates, key=len)]


def display_name_for(restaurant_id: str) -> str:
    """Canonical chain name for a nutrition table ID."""
    return _NAMES_BY_ID[restaurant_id]


def restaurants_with_nutrition_data() -> list[str]:
    """Display names of every chain with a nutrition table, sorted."""
    return sorted(RESTAURANT_IDS)


def _parse_number(raw: str) -> float:
    try:
        return float(raw.strip())
    except ValueError:
        return 0.0


def parse_nutrition_csv(content: str, restaurant_name: str = "") -> list[NutritionItem]:
    """Parse a nutrition table.

    The header row is skipped. Rows with fewer than ten columns or an empty
    item name are dropped; numbers that do not parse become 0.
    """
    items = []
    reader = csv.reader(io.StringIO(content))
    next(reader, None)

    for row_number, row in enumerate(reader, start=2):
        if not row or not any(cell.strip() for cell in row):
            continue
        if len(row) < NUTRITION_COLUMNS:
            logger.debug(
                f"[NUTRITION] Skipping line {row_number} for {restaurant_name}: "
                f"{len(row)} columns"
            )
            continue

        name = row[0].strip()
        if not name:
            continue

        calories, fat, saturated_fat, cholesterol, sodium, carbs, fiber, sugar, protein = (
            _parse_number(cell) for cell in row[1:NUTRITION_COLUMNS]
        )
        items.append(
            NutritionItem(
                item=name,
                calories=calories,
                fat=fat,
                saturated_fat=saturated_fat,
                cholesterol=cholesterol,
                sodium=sodium,
                carbs=carbs,
                fiber=fiber,
                sugar=sugar,
                protein=protein,
            )
        )

    return items


class NutritionService:
    """Nutrition lookups backed by CSV tables, memoized in the shared cache."""

    def __init__(
        self,
        cache: NamespacedCache,
        data_dir: Path,
        store: Optional[CacheService] = None,
    ) -> None:
        self._cache = cache
        self._data_dir = Path(data_dir)
        self._store = store

    async def get_nutrition(self, restaurant_name: str) -> RestaurantNutritionData:
        """Return the nutrition table for a restaurant.

        Raises:
            ValueError: If the name is empty.
            NutritionNotFoundError: If the chain is unknown or its table is
                missing or empty.
        """
        key = normalize_restaurant_name(restaurant_name)
        if not key:
            raise ValueError("restaurant_name cannot be empty")

        return await cached_lookup(
            self._cache,
            NUTRITION_BY_NAME,
            key,
            lambda: self._load(restaurant_name.strip()),
            store=self._store,
            encode=lambda data: data.model_dump(mode="json"),
            decode=RestaurantNutritionData.model_validate,
        )

    async def _load(self, restaurant_name: str) -> RestaurantNutritionData:
        restaurant_id = restaurant_id_for(restaurant_name)
        if restaurant_id is None:
            logger.info(f"[NUTRITION] No nutrition mapping for '{restaurant_name}'")
            raise NutritionNotFoundError(restaurant_name)

        path = self._data_dir / f"{restaurant_id}.csv"
        try:
            content = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"[NUTRITION] Unreadable table {path} for '{restaurant_name}': {e}")
            raise NutritionNotFoundError(restaurant_name) from None

        display_name = display_name_for(restaurant_id)
        items = parse_nutrition_csv(content, display_name)
        if not items:
            logger.warning(f"[NUTRITION] No valid items in {path}")
            raise NutritionNotFoundError(restaurant_name)

        logger.info(f"[NUTRITION] Loaded {len(items)} items for '{display_name}'")
        return RestaurantNutritionData(
            restaurant_name=display_name,
            restaurant_id=restaurant_id,
            items=items,
        )
