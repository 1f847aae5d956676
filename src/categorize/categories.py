# src/categorize/categories.py — v1
"""Category catalogue and keyword table for the keyword classifier.

Keywords are lower-case and matched as substrings of the lower-cased
``title + " " + description``. Table order is the tie-break order.
"""

from __future__ import annotations

from dealcache.core.models import DEFAULT_CATEGORY, Category

CATEGORY_KEYWORDS: dict[Category, tuple[str, ...]] = {
    Category.ELECTRONICS: (
        "phone", "smartphone", "iphone", "samsung", "laptop", "computer", "pc",
        "monitor", "tv", "television", "smart", "electronic", "device", "gadget",
        "tech", "speaker", "headphone", "earbuds", "audio", "video", "camera",
        "gaming", "console", "playstation", "xbox", "nintendo", "wireless",
        "bluetooth", "charging", "tablet", "ipad", "keyboard", "mouse", "router",
        "wifi", "printer",
    ),
    Category.HOME_HOUSEHOLD: (
        "furniture", "home", "kitchen", "bathroom", "bedroom", "living", "house",
        "garden", "patio", "décor", "decoration", "appliance", "cleaning",
        "vacuum", "chair", "table", "sofa", "bed", "mattress", "pillow",
        "curtains", "lamp", "lighting", "cookware", "utensils", "dishes",
        "storage", "organizer", "tools", "lawn", "plants", "bbq", "grill",
    ),
    Category.FASHION: (
        "clothing", "clothes", "fashion", "wear", "dress", "shirt", "pants",
        "jeans", "jacket", "coat", "shoes", "sneakers", "boots", "sandals",
        "accessory", "accessories", "watch", "jewelry", "bag", "handbag",
        "backpack", "wallet", "belt", "hat", "cap", "scarf", "gloves", "socks",
        "underwear", "t-shirt", "shorts", "hoodie", "sweater",
    ),
    Category.FOOD_GROCERY: (
        "food", "grocery", "meal", "snack", "drink", "beverage", "coffee", "tea",
        "water", "juice", "soda", "beer", "wine", "alcohol", "fruit", "vegetable",
        "meat", "fish", "dairy", "milk", "cheese", "yogurt", "bread", "pasta",
        "rice", "cereal", "chocolate", "candy", "sweet", "organic", "restaurant",
        "takeaway", "delivery",
    ),
    Category.SPORTS_OUTDOOR: (
        "sport", "fitness", "exercise", "workout", "gym", "training", "running",
        "cycling", "bike", "bicycle", "hiking", "camping", "outdoor", "adventure",
        "fishing", "hunting", "golf", "tennis", "swimming", "basketball",
        "football", "soccer", "baseball", "volleyball", "ski", "snowboard",
        "skateboard", "surf", "yoga", "mat",
    ),
    Category.BEAUTY_HEALTH: (
        "beauty", "health", "skincare", "skin", "face", "body", "hair", "makeup",
        "cosmetic", "nail", "perfume", "fragrance", "cream", "lotion", "shampoo",
        "conditioner", "soap", "shower", "bath", "toothbrush", "toothpaste",
        "dental", "vitamin", "supplement", "medicine", "pharmacy", "first aid",
        "healthcare", "wellness",
    ),
    Category.TRAVEL: (
        "travel", "trip", "vacation", "holiday", "hotel", "resort", "booking",
        "flight", "airline", "airplane", "airport", "ticket", "luggage",
        "suitcase", "passport", "tour", "tourism", "tourist", "destination",
        "beach", "mountain", "city", "country", "international", "domestic",
        "train", "bus", "car rental", "cruise",
    ),
    Category.ENTERTAINMENT: (
        "entertainment", "fun", "game", "toy", "play", "movie", "film", "cinema",
        "theater", "theatre", "music", "concert", "festival", "show", "event",
        "ticket", "stream", "streaming", "subscription", "netflix", "spotify",
        "disney", "amazon", "hbo", "book", "ebook", "audiobook", "podcast",
        "board game",
    ),
    Category.KIDS_TOYS: (
        "kid", "child", "children", "baby", "infant", "toddler", "toy", "game",
        "play", "lego", "doll", "action figure", "puzzle", "educational",
        "learning", "school", "daycare", "stroller", "car seat", "diaper",
        "bottle", "pacifier", "clothing", "shoes", "book", "backpack",
        "lunch box",
    ),
    Category.AUTOMOTIVE: (
        "car", "auto", "automotive", "vehicle", "truck", "suv", "van",
        "motorcycle", "scooter", "bike", "part", "accessory", "oil", "tire",
        "wheel", "battery", "engine", "transmission", "brake", "light", "seat",
        "cover", "mat", "charger", "cleaner", "wash", "polish", "repair",
        "maintenance", "service",
    ),
    Category.SERVICES: (
        "service", "subscription", "membership", "plan", "insurance", "warranty",
        "protection", "repair", "installation", "setup", "delivery", "shipping",
        "maintenance", "cleaning", "consulting", "advice", "support",
        "assistance", "care", "education", "course", "class", "tutorial",
        "training", "coaching", "financial", "legal", "medical", "dental",
    ),
    Category.OTHER: (),
}


def list_categories() -> list[str]:
    """Category names in catalogue order, default last."""
    return [c.value for c in Category]


def keyword_score(text: str, category: Category) -> int:
    """Number of the category's keywords contained in ``text`` (lower-cased)."""
    return sum(1 for keyword in CATEGORY_KEYWORDS[category] if keyword in text)


def best_keyword_category(title: str, description: str) -> Category:
    """Highest-scoring category; first seen wins ties, no match gives the default."""
    text = f"{title.lower()} {description.lower()}"
    best = DEFAULT_CATEGORY
    best_score = 0
    for category, keywords in CATEGORY_KEYWORDS.items():
        if not keywords:
            continue
        score = keyword_score(text, category)
        if score > best_score:
            best, best_score = category, score
    return best
