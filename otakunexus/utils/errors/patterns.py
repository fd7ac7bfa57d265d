from typing import Any, Optional, List, Dict


def safe_get_list(data: Dict, key: str, default: Optional[List] = None) -> List:
    """Récupération sécurisée de listes depuis dictionnaire."""
    if default is None:
        default = []
    return data.get(key, default) if isinstance(data.get(key), list) else default


def safe_get_dict(data: Dict, key: str, default: Optional[Dict] = None) -> Dict:
    """Récupération sécurisée de dictionnaires."""
    if default is None:
        default = {}
    return data.get(key, default) if isinstance(data.get(key), dict) else default


def safe_get_str(data: Dict, key: str, default: str = "") -> str:
    """Récupération sécurisée de strings (vide ou None → défaut)."""
    value = data.get(key)
    if value is None or value == "":
        return default
    return str(value)


def safe_get_int(data: Dict, key: str, default: Optional[int] = 0) -> Optional[int]:
    """Récupération sécurisée d'entiers (0, None et valeurs invalides → défaut)."""
    try:
        value = data.get(key)
        return int(value) if value else default
    except (ValueError, TypeError):
        return default


def is_success_payload(payload: Any) -> bool:
    """Vérifie qu'une réponse JSON porte `success: true`."""
    return isinstance(payload, dict) and payload.get("success") is True
