from ..models import ProductsSnapshot, SeriesItem

def build_as_of(snapshot: ProductsSnapshot) -> dict[str, str]:
    return {s.code: s.as_of for s in snapshot.series}

def latest_value(series: SeriesItem) -> float:
    point = series.latest()
    return point.value if point else 0.0

def round1(value: float) -> float:
    return round(float(value), 1)
