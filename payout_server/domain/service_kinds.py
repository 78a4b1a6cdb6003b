"""Catalogue of consultation service kinds offered to readers' clients."""

SERVICE_KIND_NAMES = {
    "flash_1carta": "Pregunta Flash",
    "flash_1carta_gratis": "Pregunta Flash (Regalo)",
    "privada_3cartas": "Consulta Privada",
    "extensa_5cartas": "Consulta Extensa",
    "lectura_solos_solas": "Lectura Solos/Solas",
    "lectura_amores_pasados": "Lectura Amores Pasados",
    "lectura_amores_nuevos": "Lectura Amores Nuevos",
    "lectura_almas_gemelas": "Lectura Almas Gemelas",
    "lectura_global": "Lectura Global",
    "ritual": "Ritual",
    "carta_astral": "Carta Astral",
    "sesion_reiki": "Sesión de Reiki",
    "registros_akashicos": "Registros Akáshicos",
    "sesion_numerologia": "Sesión de Numerología",
    "analisis_suenos": "Análisis de Sueños",
}

SERVICE_CATEGORIES = {
    "Consultas Rápidas": ("flash_1carta", "flash_1carta_gratis"),
    "Consultas Privadas": ("privada_3cartas", "extensa_5cartas"),
    "Lecturas de Amor": (
        "lectura_solos_solas",
        "lectura_amores_pasados",
        "lectura_amores_nuevos",
        "lectura_almas_gemelas",
    ),
    "Servicios Especiales": (
        "carta_astral",
        "sesion_reiki",
        "registros_akashicos",
        "sesion_numerologia",
        "analisis_suenos",
        "ritual",
    ),
    "Otras": ("lectura_global",),
}

DEFAULT_CATEGORY = "Otras"

# Promotional kinds: shown as free to clients, the reader still earns net_price.
FREE_SERVICE_KINDS = frozenset({"flash_1carta_gratis"})


def format_service_kind(service_kind: str) -> str:
    return " ".join(word.capitalize() for word in service_kind.split("_"))


def service_name(service_kind: str) -> str:
    return SERVICE_KIND_NAMES.get(service_kind) or format_service_kind(service_kind)


def service_category(service_kind: str) -> str:
    for category, kinds in SERVICE_CATEGORIES.items():
        if service_kind in kinds:
            return category
    return DEFAULT_CATEGORY


def is_free_service(service_kind: str) -> bool:
    return service_kind in FREE_SERVICE_KINDS
