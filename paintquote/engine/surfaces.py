# Surface type reference table: canonical units, display names, ordering

# Canonical measurement unit per surface type.
# Area surfaces are measured in sq ft, trim in linear ft, doors/windows/cabinets counted.
SURFACE_UNITS = {
    "wall": "sqft",
    "ceiling": "sqft",
    "trim": "lf",
    "door": "ea",
    "window": "ea",
    "cabinet": "ea",
    "wallpaper": "sqft",
    "other": "ea",
}

# Fixed section order when a quote is organized by surface
SURFACE_ORDER = ["wall", "ceiling", "trim", "door", "window", "cabinet", "wallpaper", "other"]

SURFACE_NAMES = {
    "wall": "Walls",
    "ceiling": "Ceilings",
    "trim": "Trim & Baseboards",
    "door": "Doors",
    "window": "Windows",
    "cabinet": "Cabinets",
    "wallpaper": "Wallpaper Removal",
    "other": "General",
}

# Removal work: one pass of labor, no coats, no paint
LABOR_ONLY = {"wallpaper"}


def is_known_surface(surface_type: str) -> bool:
    return surface_type in SURFACE_UNITS


def is_labor_only(surface_type: str) -> bool:
    return surface_type in LABOR_ONLY


def unit_for(surface_type: str) -> str:
    """Canonical unit for a surface type. Raises KeyError for unknown types."""
    return SURFACE_UNITS[surface_type]


def surface_rank(surface_type: str) -> int:
    """Position of a surface type in the canonical order."""
    return SURFACE_ORDER.index(surface_type)


def display_name(surface_type: str) -> str:
    return SURFACE_NAMES.get(surface_type, surface_type.replace("_", " ").title())


def task_name(surface_type: str) -> str:
    """Description of the work on one surface type, e.g. 'Paint Walls'."""
    if surface_type == "wallpaper":
        return "Remove Wallpaper"
    return f"Paint {display_name(surface_type)}"
