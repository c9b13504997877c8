"""
Agrégateur de conformité : documents de l'étudiant + clearances du stage.

Fonctions pures. Un document est « satisfait » s'il est complété ET
(sans expiration OU expiration strictement future).
"""

import logging
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional

from app.models.enums import DOC_TYPE_RULES, DocType, REQUIRED_DOC_TYPES
from app.schemas.compliance import ExpiringDoc, Readiness

logger = logging.getLogger(__name__)

EXPIRING_WITHIN_DAYS = 30

# Clearances du stage exigées pour l'éligibilité NREMT : (attribut, libellé)
NREMT_CLEARANCES = [
    ("background_check_completed", "background_check"),
    ("drug_screen_completed", "drug_screen"),
    ("liability_form_completed", "liability_form"),
    ("immunizations_verified", "immunizations"),
]


def is_satisfied(record, today: date) -> bool:
    if not record.completed:
        return False
    return record.expiration_date is None or record.expiration_date > today


def parse_doc_type(raw) -> Optional[DocType]:
    try:
        return DocType(raw)
    except ValueError:
        return None


def index_records(records: Iterable, today: date) -> Dict[DocType, object]:
    """
    Un enregistrement par type de document. Si la base en contient plusieurs,
    on retient le meilleur : satisfait d'abord, puis l'expiration la plus lointaine.
    Les types inconnus (colonnes ajoutées hors énumération) sont ignorés.
    """
    best: Dict[DocType, object] = {}
    for record in records:
        doc_type = parse_doc_type(record.doc_type)
        if doc_type is None:
            logger.warning("Type de document inconnu ignoré : %r (étudiant %s)", record.doc_type, record.student_id)
            continue
        current = best.get(doc_type)
        if current is None or _record_rank(record, today) > _record_rank(current, today):
            best[doc_type] = record
    return best


def _record_rank(record, today: date):
    return (
        is_satisfied(record, today),
        record.expiration_date is None,
        record.expiration_date or date.min,
    )


def missing_clearances(internship) -> List[str]:
    if internship is None:
        return [label for _, label in NREMT_CLEARANCES]
    return [label for field, label in NREMT_CLEARANCES if not getattr(internship, field)]


def compute_readiness(records: Iterable, today: date, internship=None) -> Readiness:
    """
    Agrège les documents de conformité d'UN étudiant.

    - missing_docs  : documents requis jamais complétés ou expirés
    - expiring_docs : documents satisfaits expirant dans les 30 jours
    - nremt_eligible : tous les documents requis satisfaits ET clearances du stage à True
      (sans stage, l'étudiant n'est jamais éligible)
    """
    by_type = index_records(records, today)
    horizon = today + timedelta(days=EXPIRING_WITHIN_DAYS)

    missing = [
        doc for doc in REQUIRED_DOC_TYPES
        if doc not in by_type or not is_satisfied(by_type[doc], today)
    ]

    expiring = []
    for doc in DocType:
        record = by_type.get(doc)
        if record is None or not is_satisfied(record, today):
            continue
        if record.expiration_date is not None and record.expiration_date <= horizon:
            expiring.append(ExpiringDoc(doc_type=doc, expiration_date=record.expiration_date))

    clearances = missing_clearances(internship)

    return Readiness(
        nremt_eligible=not missing and not clearances,
        missing_docs=missing,
        expiring_docs=expiring,
        missing_clearances=clearances,
    )


def doc_label(doc_type: DocType) -> str:
    return DOC_TYPE_RULES[doc_type].label
