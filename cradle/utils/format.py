def format_ml(ml: float) -> str:
    if ml >= 1000:
        return f"{ml / 1000:.1f}L"
    return f"{ml:g}ml"


def format_weight(kg: float) -> str:
    if kg < 1:
        return f"{round(kg * 1000)}g"
    return f"{kg:.2f}kg"


def format_height(cm: float) -> str:
    return f"{cm:.1f}cm"


def format_temperature(celsius: float) -> str:
    return f"{celsius:.1f}°C"


def capitalize(value: str) -> str:
    return value[:1].upper() + value[1:].lower()


def pluralize(count: int, singular: str, plural: str | None = None) -> str:
    return singular if count == 1 else (plural or f"{singular}s")
