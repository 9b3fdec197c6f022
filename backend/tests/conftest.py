from __future__ import annotations

import copy
import pathlib
import sys
from typing import Any, Dict

import pytest

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[2]
BACKEND_ROOT = PROJECT_ROOT / "backend"
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))


_COMPETITOR_METRICS = {"presence": 8, "consistency": 7, "professionalism": 9, "engagement": 6.5}

VALID_PAYLOAD: Dict[str, Any] = {
    "basicInfo": {
        "handle": "apple",
        "businessName": "Apple Inc",
        "category": "Tecnología",
        "bio": "Everyone has a story. Share yours with #ShotoniPhone",
        "services": ["iPhone", "Mac", "Servicios"],
        "location": "Cupertino, California",
        "targetAudience": "Creativos y consumidores de tecnología",
        "uniqueValueProp": "Diseño e integración de hardware y software",
        "contact": {"website": "https://www.apple.com"},
    },
    "contentMetrics": {
        "postFrequency": "2-3 publicaciones por semana",
        "contentTypes": [
            {"type": "Reels", "percentage": 60},
            {"type": "Fotos", "percentage": 40},
        ],
        "themes": ["Fotografía con iPhone", "Creadores"],
        "tone": "Inspirador",
        "visualStyle": "Minimalista",
        "engagementLevel": "Alto",
        "brandConsistency": 9,
        "qualityScore": {"visual": 10, "copywriting": 8},
    },
    "competitors": [
        {
            "name": name,
            "strengths": ["Catálogo amplio"],
            "weaknesses": ["Tono poco consistente"],
            "practices": ["Colaboraciones con creadores"],
            "metrics": dict(_COMPETITOR_METRICS),
        }
        for name in ("samsungmobile", "googlepixel", "xiaomi")
    ],
    "diagnosis": {
        "overallScore": 8.5,
        "executiveSummary": "Perfil sólido con alta calidad visual.",
        "opportunities": [
            {"area": "Llamadas a la acción", "priority": "Alta", "advice": "Añadir enlaces directos."},
            {"area": "Frecuencia", "priority": "Baja", "advice": "Mantener el ritmo actual."},
        ],
        "gapsVsCompetitors": ["Menos interacción en comentarios"],
    },
    "commercialProposal": {
        "introduction": "Propuesta para potenciar la presencia digital.",
        "painPoints": ["Poca conversión desde Instagram"],
        "solution": {
            "webDesign": "Landing page optimizada",
            "chatbot": "Asistente para DMs",
            "bookingSystem": "Reservas de citas en tienda",
            "socialOptimization": "Calendario editorial",
        },
        "projectedBenefits": [{"metric": "Conversiones", "improvement": "+20%"}],
    },
}


@pytest.fixture
def valid_payload() -> Dict[str, Any]:
    return copy.deepcopy(VALID_PAYLOAD)
