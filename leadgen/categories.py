"""
Venue type to provider category mappings.

Campaign rules carry a free-text venue type ("Coffee Shop", "wine-bar").
Each places provider needs its own category tokens; unknown types fall back
to a broad default instead of failing.
"""

from typing import Iterable, List

GEOAPIFY_CATEGORIES = {
    "cafe": ["catering.cafe"],
    "coffee": ["catering.cafe.coffee", "catering.cafe.coffee_shop"],
    "coffee_shop": ["catering.cafe.coffee", "catering.cafe.coffee_shop"],
    "coffeeshop": ["catering.cafe.coffee", "catering.cafe.coffee_shop"],
    "bakery": ["commercial.food_and_drink.bakery"],
    "restaurant": ["catering.restaurant"],
    "bar": ["catering.bar"],
    "pub": ["catering.pub"],
    "fast_food": ["catering.fast_food"],
    "ice_cream": ["catering.ice_cream"],
    "pizza": ["catering.fast_food.pizza", "catering.restaurant.pizza"],
    "tea_house": ["catering.cafe.tea"],
    "dessert_shop": ["catering.cafe.dessert"],
    "wine_bar": ["catering.bar"],
    "brewery": ["catering.biergarten"],
    "steakhouse": ["catering.restaurant.steak_house"],
    "seafood": ["catering.restaurant.seafood"],
    "sushi": ["catering.restaurant.sushi"],
    "mexican": ["catering.restaurant.mexican"],
    "italian": ["catering.restaurant.italian"],
    "chinese": ["catering.restaurant.chinese"],
    "indian": ["catering.restaurant.indian"],
    "thai": ["catering.restaurant.thai"],
}
GEOAPIFY_DEFAULT = ["catering"]

FOURSQUARE_CATEGORIES = {
    "cafe": ["13032"],
    "coffee": ["13032"],
    "coffeeshop": ["13032"],
    "coffee_shop": ["13032"],
    "bakery": ["13002"],
    "restaurant": ["13065"],
    "bar": ["13003"],
    "pizza": ["13064"],
    "fast_food": ["13145"],
    "ice_cream": ["13040"],
    "juice_bar": ["13381"],
    "tea_house": ["13344"],
    "dessert_shop": ["13028"],
    "deli": ["13026"],
    "food_truck": ["13141"],
    "pub": ["13003"],
    "wine_bar": ["13024"],
    "brewery": ["13029"],
    "steakhouse": ["13072"],
    "seafood": ["13068"],
    "sushi": ["13276"],
    "mexican": ["13303"],
    "italian": ["13236"],
    "chinese": ["13099"],
    "indian": ["13199"],
    "thai": ["13352"],
}
# Dining and Drinking
FOURSQUARE_DEFAULT = ["13000"]


def normalize_venue_type(venue_type: str) -> str:
    """'Coffee Shop' / 'coffee-shop' -> 'coffee_shop'."""
    return "_".join((venue_type or "").strip().lower().replace("-", " ").split())


def map_venue_types(
    venue_types: Iterable[str],
    mapping: dict,
    default: List[str],
) -> List[str]:
    """
    Map venue type labels to provider category tokens.

    Preserves first-seen order and drops duplicates. Returns the provider's
    default when no label is known.
    """
    tokens: List[str] = []
    for venue_type in venue_types:
        if not venue_type:
            continue
        for token in mapping.get(normalize_venue_type(str(venue_type)), []):
            if token not in tokens:
                tokens.append(token)
    return tokens or list(default)
