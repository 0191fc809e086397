from __future__ import annotations

from enum import Enum
from typing import Dict, Iterable, Tuple


class KillChainTemplate(str, Enum):
    PHISHING = "phishing"
    WEBAPP = "webapp"
    WIRELESS = "wireless"
    STOLEN_DEVICE = "stolen_device"
    NETWORK = "network"
    GENERIC = "generic"


_GENERIC_PHASES = (
    "Reconnaissance",
    "Initial Access",
    "Execution",
    "Persistence",
    "Privilege Escalation",
    "Defense Evasion",
    "Discovery",
    "Lateral Movement",
    "Collection",
    "Exfiltration",
)

PHASES: Dict[KillChainTemplate, Tuple[str, ...]] = {
    KillChainTemplate.PHISHING: (
        "Reconnaissance",
        "Email Spear Phishing",
        "Credential Harvesting",
        "Initial Access",
        "Privilege Escalation",
        "Lateral Movement",
        "Data Exfiltration",
    ),
    KillChainTemplate.WEBAPP: (
        "Target Identification",
        "Vulnerability Scanning",
        "SQL Injection",
        "Database Access",
        "Data Extraction",
        "Persistence",
        "Covering Tracks",
    ),
    KillChainTemplate.WIRELESS: (
        "Network Discovery",
        "Wireless Assessment",
        "Access Point Compromise",
        "Network Infiltration",
        "SCADA Access",
        "System Control",
        "Impact Assessment",
    ),
    KillChainTemplate.STOLEN_DEVICE: (
        "Physical Theft",
        "Credential Extraction",
        "VPN Access",
        "Network Reconnaissance",
        "Database Access",
        "Data Harvesting",
        "Account Persistence",
    ),
    KillChainTemplate.NETWORK: _GENERIC_PHASES,
    KillChainTemplate.GENERIC: _GENERIC_PHASES,
}

STOCK_IMAGES: Dict[KillChainTemplate, str] = {
    KillChainTemplate.PHISHING: "https://images.unsplash.com/photo-1487058792275-0ad4aaf24ca7?w=800&h=600&fit=crop",
    KillChainTemplate.WEBAPP: "https://images.unsplash.com/photo-1518770660439-4636190af475?w=800&h=600&fit=crop",
    KillChainTemplate.WIRELESS: "https://images.unsplash.com/photo-1526374965328-7f61d4dc18c5?w=800&h=600&fit=crop",
    KillChainTemplate.NETWORK: "https://images.unsplash.com/photo-1470813740244-df37b8c1edcb?w=800&h=600&fit=crop",
    KillChainTemplate.STOLEN_DEVICE: "https://images.unsplash.com/photo-1518770660439-4636190af475?w=800&h=600&fit=crop",
    KillChainTemplate.GENERIC: "https://images.unsplash.com/photo-1518770660439-4636190af475?w=800&h=600&fit=crop",
}

# Ordre de priorité : le premier tag détecté l'emporte.
TEMPLATE_BY_TAG: Tuple[Tuple[str, KillChainTemplate], ...] = (
    ("phishing", KillChainTemplate.PHISHING),
    ("web app", KillChainTemplate.WEBAPP),
    ("wireless", KillChainTemplate.WIRELESS),
    ("internal pentest", KillChainTemplate.NETWORK),
    ("stolen device", KillChainTemplate.STOLEN_DEVICE),
)


def template_for_tags(tag_names: Iterable[str]) -> KillChainTemplate:
    normalized = {name.strip().lower() for name in tag_names if name}
    for tag_name, template in TEMPLATE_BY_TAG:
        if tag_name in normalized:
            return template
    return KillChainTemplate.GENERIC


def parse_template(value: str) -> KillChainTemplate:
    try:
        return KillChainTemplate((value or "").strip().lower())
    except ValueError as exc:
        known = ", ".join(template.value for template in KillChainTemplate)
        raise ValueError(f"Modèle inconnu: {value!r} (attendu: {known})") from exc


def numbered_phases(template: KillChainTemplate) -> Tuple[str, ...]:
    return tuple(f"{index}. {phase}" for index, phase in enumerate(PHASES[template], start=1))


def describe_templates() -> list:
    return [
        {
            "key": template.value,
            "phases": list(PHASES[template]),
            "stock_image": STOCK_IMAGES[template],
        }
        for template in KillChainTemplate
    ]
