"""
RosterPlan — Built-in activity catalog.

The department's weekly template (weekday → period → activities, in the order
they are listed on the roster) and the category each activity belongs to.
Read-only: core modules receive these through a `Catalog` instance.
"""

from __future__ import annotations

WEEKLY_TEMPLATE: dict[str, dict[str, list[str]]] = {
    "Monday": {
        "Morning": [
            "Équipe visite", "Équipe HDJ", "Équipe 2ème salle",
            "Équipe 3ème salle", "Petite chirurgie",
            "Équipe entrant", "Nouveaux malades",
        ],
        "Afternoon": ["Équipe contre visite", "CRM", "Annexes"],
        "Morning&Afternoon": ["Équipe de garde"],
    },
    "Tuesday": {
        "Morning": [
            "Équipe visite", "CS infectieuse", "CS Pr Hidan",
            "CS Pr Rachid", "CS Pr Hammouch", "Angiographie",
            "Champs visuels (CV)", "OCT", "Topographie", "Laser",
            "Cours des externes", "Strabologie",
            "Centralisation", "Équipe dossier", "Interprétation",
        ],
        "Morning&Afternoon": ["Équipe de garde"],
    },
    "Wednesday": {
        "Morning": [
            "Équipe visite", "Équipe 3ème salle", "Équipe HDJ",
            "Équipe 2ème salle", "Petite chirurgie",
        ],
        "Afternoon": ["Équipe contre visite", "Glaucome", "Uvéite"],
        "Morning&Afternoon": ["Équipe de garde"],
    },
    "Thursday": {
        "Morning": [
            "Équipe visite", "Cours des externes", "CS Pr Benhmidoune",
            "CS Pr Bentouhami", "CS Pr Mchachi", "Équipe dossier",
            "Laser", "OCT", "Angiographie", "Topographie",
            "Champs visuels (CV)", "Interprétation",
            "Nouveaux malades", "Strabologie", "CS rétinopathie diabétique",
        ],
        "Afternoon": ["Équipe contre visite", "CS Cornée", "CS Réfraction"],
        "Morning&Afternoon": ["Équipe de garde"],
    },
    "Friday": {
        "Morning": [
            "Équipe visite", "Équipe 3ème salle", "Équipe 2ème salle",
            "Équipe HDJ", "Petite chirurgie", "Équipe dossier",
            "OCT", "Laser", "Angiographie",
            "Champs visuels (CV)", "Topographie", "Interprétation",
        ],
        "Afternoon": ["Équipe contre visite", "CS Réfraction"],
        "Morning&Afternoon": ["Équipe de garde"],
    },
    "Saturday": {
        "Morning": ["Équipe visite"],
        "Morning&Afternoon": ["Équipe de garde du weekend"],
    },
}

CATEGORY_META: dict[str, dict[str, str]] = {
    "consultations": {
        "label": "Consultations",
        "description": "Consultations spécialisées, nouveaux malades, CS externes, CRM, annexes…",
    },
    "bloc": {
        "label": "Bloc opératoire",
        "description": "Bloc, 2ème/3ème salle, HDJ, petite chirurgie…",
    },
    "service": {
        "label": "Service",
        "description": "Visites, entrants, contre-visite, dossiers, cours, centralisation…",
    },
    "garde": {
        "label": "Garde",
        "description": "Garde semaine et garde du weekend.",
    },
    "exploration": {
        "label": "Exploration",
        "description": "CV, OCT, Topographie, Laser, Interprétation…",
    },
}

CATEGORY_ACTIVITIES: dict[str, list[str]] = {
    "consultations": [
        "CS infectieuse", "CS Pr Hidan", "CS Pr Rachid", "CS Pr Hammouch",
        "CS Pr Benhmidoune", "CS Pr Bentouhami", "CS Pr Mchachi",
        "CS Cornée", "CS Réfraction", "CS rétinopathie diabétique",
        "Strabologie", "Glaucome", "Uvéite", "Nouveaux malades", "CRM", "Annexes",
    ],
    "bloc": [
        "Équipe 2ème salle", "Équipe 3ème salle", "Petite chirurgie", "Équipe HDJ",
    ],
    "service": [
        "Équipe visite", "Équipe entrant", "Équipe contre visite",
        "Cours des externes", "Centralisation", "Équipe dossier",
    ],
    "garde": ["Équipe de garde", "Équipe de garde du weekend"],
    "exploration": [
        "Champs visuels (CV)", "OCT", "Topographie", "Laser",
        "Interprétation", "Angiographie",
    ],
}


def category_map() -> dict[str, str]:
    """Invert CATEGORY_ACTIVITIES into activity → category key."""
    return {
        activity: category
        for category, activities in CATEGORY_ACTIVITIES.items()
        for activity in activities
    }
