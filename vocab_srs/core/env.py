import os


def _to_int(s, default):
    try:
        return int(float(str(s)))
    except (TypeError, ValueError):
        return default


def _to_float(s, default):
    try:
        return float(str(s))
    except (TypeError, ValueError):
        return default


def env_int(name: str, default: int) -> int:
    return _to_int(os.getenv(name, default), default)


def env_float(name: str, default: float) -> float:
    return _to_float(os.getenv(name, default), default)


def env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")
