# ===================================
# app/core/context.py
# ===================================
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class RequestContext:
    """Métadonnées de la requête transmises explicitement aux services"""
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


# Appels internes (scheduler, tests)
SYSTEM_CONTEXT = RequestContext(ip_address=None, user_agent="system")
