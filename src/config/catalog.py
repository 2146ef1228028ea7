"""Static room-type / rate-plan catalog for the property.

Codes must match the OPERA configuration exactly. A code returned by OPERA
that is missing here is dropped from availability results (and logged), so
new room types or rate plans have to be added before they can be sold.
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

from structlog import get_logger

from src.models.catalog import ConfigCatalog

logger = get_logger(__name__)


DEFAULT_CATALOG_DATA: dict[str, Any] = {
    "defaultRatePlanCode": "AIF-2025",
    "roomTypes": {
        # Mayan - 1 bedroom
        "1BBFG": {
            "nameEn": "One Bedroom Beach Front",
            "nameEs": "Una Recámara Frente al Mar",
            "bedrooms": 1,
            "maxAdults": 4,
            "maxChildren": 4,
            "beds": ["1 KING"],
            "location": "Mayan",
            "view": "ocean",
            "sortOrder": 10,
        },
        "1BBFS": {
            "nameEn": "One Bedroom Beach Front + Sofa Bed",
            "nameEs": "Una Recámara Frente al Mar + Sofá Cama",
            "bedrooms": 1,
            "maxAdults": 4,
            "maxChildren": 4,
            "beds": ["1 KING", "1 SOFA"],
            "location": "Mayan",
            "view": "ocean",
            "sortOrder": 11,
        },
        "1BGS": {
            "nameEn": "One Bedroom Tropical Garden + Sofa Bed",
            "nameEs": "Una Recámara Jardín Tropical + Sofá Cama",
            "bedrooms": 1,
            "maxAdults": 4,
            "maxChildren": 4,
            "beds": ["1 KING", "1 SOFA"],
            "location": "Mayan",
            "view": "garden",
            "sortOrder": 20,
        },
        "1BT": {
            "nameEn": "One Bedroom Tropical Garden",
            "nameEs": "Una Recámara Jardín Tropical",
            "bedrooms": 1,
            "maxAdults": 4,
            "maxChildren": 4,
            "beds": ["1 QUEEN"],
            "location": "Mayan",
            "view": "garden",
            "sortOrder": 21,
        },
        "1BPTG": {
            "nameEn": "One Bedroom Tower Villa",
            "nameEs": "Una Recámara Tower Villa",
            "bedrooms": 1,
            "maxAdults": 4,
            "maxChildren": 4,
            "beds": ["1 KING"],
            "location": "Mayan",
            "view": "garden",
            "sortOrder": 30,
        },
        "1BPG": {
            "nameEn": "One Bedroom Tower Villa + Sofa Bed",
            "nameEs": "Una Recámara Tower Villa + Sofá Cama",
            "bedrooms": 1,
            "maxAdults": 4,
            "maxChildren": 4,
            "beds": ["1 KING", "1 SOFA"],
            "location": "Mayan",
            "view": "garden",
            "sortOrder": 31,
        },
        # Mayan - 2 bedroom
        "2BMS": {
            "nameEn": "Two Bedroom Master Suite",
            "nameEs": "Dos Recámaras Master Suite",
            "bedrooms": 2,
            "maxAdults": 6,
            "maxChildren": 4,
            "beds": ["1 KING", "1 QUEEN", "1 SOFA"],
            "location": "Mayan",
            "view": "ocean",
            "sortOrder": 40,
        },
        "2BMSS": {
            "nameEn": "Two Bedroom Master Suite Superior",
            "nameEs": "Dos Recámaras Master Suite Superior",
            "bedrooms": 2,
            "maxAdults": 6,
            "maxChildren": 4,
            "beds": ["1 KING", "1 QUEEN", "1 SOFA"],
            "location": "Mayan",
            "view": "ocean",
            "sortOrder": 41,
        },
        "2BJS": {
            "nameEn": "Two Bedroom Junior Suite",
            "nameEs": "Dos Recámaras Junior Suite",
            "bedrooms": 2,
            "maxAdults": 6,
            "maxChildren": 4,
            "beds": ["1 KING", "1 QUEEN", "1 SOFA"],
            "location": "Mayan",
            "view": "ocean",
            "sortOrder": 45,
        },
        "2BT": {
            "nameEn": "Two Bedroom Tropical Garden",
            "nameEs": "Dos Recámaras Jardín Tropical",
            "bedrooms": 2,
            "maxAdults": 4,
            "maxChildren": 4,
            "beds": ["2 QUEEN"],
            "location": "Mayan",
            "view": "garden",
            "sortOrder": 50,
        },
    },
    "ratePlans": {
        "ALLINCPREM": {
            "package": "premium",
            "labelEn": "All Inclusive Premium",
            "labelEs": "Todo Incluido Premium",
            "includes": ["meals", "drinks", "activities", "premium_spirits"],
            "sortOrder": 1,
        },
        "AIF": {
            "package": "family",
            "labelEn": "All Inclusive Family",
            "labelEs": "Todo Incluido Familiar",
            "includes": ["meals", "drinks", "kids_club", "activities"],
            "sortOrder": 2,
        },
        "AIF-2025": {
            "package": "family",
            "labelEn": "All Inclusive Family 2025",
            "labelEs": "Todo Incluido Familiar 2025",
            "includes": ["meals", "drinks", "kids_club", "activities"],
            "sortOrder": 3,
        },
        "AIP-2025": {
            "package": "premium",
            "labelEn": "All Inclusive Premium 2025",
            "labelEs": "Todo Incluido Premium 2025",
            "includes": ["meals", "drinks", "kids_club", "activities", "premium_spirits"],
            "sortOrder": 4,
        },
        "FRACKMP2025": {
            "package": "promo",
            "labelEn": "Special Rate 2025",
            "labelEs": "Tarifa Especial 2025",
            "includes": ["meals", "drinks", "activities"],
            "sortOrder": 5,
        },
        "BI-2025": {
            "package": "basic",
            "labelEn": "Breakfast Included 2025",
            "labelEs": "Desayuno Incluido 2025",
            "includes": ["breakfast"],
            "sortOrder": 10,
        },
    },
    "packageTypes": {
        "premium": {"labelEn": "Premium", "labelEs": "Premium", "color": "#b58e4b", "bgClass": "bg-premium"},
        "family": {"labelEn": "Family", "labelEs": "Familiar", "color": "#2babd9", "bgClass": "bg-family"},
        "basic": {
            "labelEn": "Breakfast Only",
            "labelEs": "Solo Desayuno",
            "color": "#2babd9",
            "bgClass": "bg-breakfast",
        },
        "promo": {"labelEn": "Special", "labelEs": "Especial", "color": "#9333ea", "bgClass": "bg-promo"},
    },
    "amenities": {
        "meals": {"en": "All Meals", "es": "Todas las Comidas"},
        "drinks": {"en": "Unlimited Drinks", "es": "Bebidas Ilimitadas"},
        "premium_spirits": {"en": "Premium Spirits", "es": "Licores Premium"},
        "activities": {"en": "Daily Activities", "es": "Actividades Diarias"},
        "kids_club": {"en": "Kids Club Access", "es": "Acceso a Club de Niños"},
        "breakfast": {"en": "Daily Breakfast", "es": "Desayuno Diario"},
    },
    "views": {
        "ocean": {"en": "Ocean View", "es": "Vista al Mar"},
        "garden": {"en": "Garden View", "es": "Vista al Jardín"},
        "pool": {"en": "Pool View", "es": "Vista a la Piscina"},
    },
}


@lru_cache(maxsize=None)
def load_catalog(path: Optional[str] = None) -> ConfigCatalog:
    """Load the catalog once per path.

    Args:
        path: Optional JSON file with the same structure as DEFAULT_CATALOG_DATA.
            When omitted the built-in catalog is used.

    Returns:
        Frozen ConfigCatalog

    Raises:
        ValueError: If the file cannot be read or does not validate
    """
    if not path:
        catalog = ConfigCatalog.model_validate(DEFAULT_CATALOG_DATA)
        source = "built-in"
    else:
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
            catalog = ConfigCatalog.model_validate(data)
        except (OSError, ValueError) as e:
            logger.error("Failed to load catalog file", catalog_path=path, error=str(e))
            raise ValueError(f"Invalid catalog file {path}: {str(e)}") from e
        source = path

    logger.info(
        "Catalog loaded",
        source=source,
        room_types=len(catalog.room_types),
        rate_plans=len(catalog.rate_plans),
    )
    return catalog
