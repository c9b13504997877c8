"""
Tests unitaires de l'agrégateur de conformité (readiness).
Couverture : documents satisfaits / expirés / expirant, clearances du stage,
éligibilité NREMT (couverture combinatoire des documents requis), bascule idempotente.
"""

import itertools
import uuid
from datetime import timedelta

import pytest

from app.models.enums import REQUIRED_DOC_TYPES, DocType
from app.models.compliance import ComplianceRecord
from app.services.readiness import compute_readiness, is_satisfied
from factories import CLEARANCES, TODAY, complete_records, make_phase_2, make_record

STUDENT_ID = uuid.uuid4()


def cleared_internship():
    return make_phase_2(student_id=STUDENT_ID, **CLEARANCES)


# ============================================================
# is_satisfied
# ============================================================

def test_document_complete_sans_expiration_satisfait():
    assert is_satisfied(make_record(STUDENT_ID, DocType.MMR), TODAY)


def test_document_non_complete_non_satisfait():
    assert not is_satisfied(make_record(STUDENT_ID, DocType.MMR, completed=False), TODAY)


def test_expiration_aujourd_hui_non_satisfait():
    """L'expiration doit être strictement future."""
    record = make_record(STUDENT_ID, DocType.BLS, expiration_date=TODAY)
    assert not is_satisfied(record, TODAY)


def test_expiration_demain_satisfait():
    record = make_record(STUDENT_ID, DocType.BLS, expiration_date=TODAY + timedelta(days=1))
    assert is_satisfied(record, TODAY)


# ============================================================
# compute_readiness
# ============================================================

def test_tout_complet_eligible():
    readiness = compute_readiness(complete_records(STUDENT_ID), TODAY, cleared_internship())
    assert readiness.nremt_eligible is True
    assert readiness.missing_docs == []
    assert readiness.missing_clearances == []


def test_sans_stage_jamais_eligible():
    readiness = compute_readiness(complete_records(STUDENT_ID), TODAY)
    assert readiness.nremt_eligible is False
    assert len(readiness.missing_clearances) == 4


def test_clearance_manquante_non_eligible():
    internship = cleared_internship()
    internship.drug_screen_completed = False
    readiness = compute_readiness(complete_records(STUDENT_ID), TODAY, internship)
    assert readiness.nremt_eligible is False
    assert readiness.missing_clearances == ["drug_screen"]


def test_documents_optionnels_ignores():
    optional = {DocType.COVID, DocType.FLU, DocType.HOSPITAL_ORIENT}
    records = [r for r in complete_records(STUDENT_ID) if DocType(r.doc_type) not in optional]
    readiness = compute_readiness(records, TODAY, cleared_internship())
    assert readiness.nremt_eligible is True


@pytest.mark.parametrize("doc_type", REQUIRED_DOC_TYPES)
def test_document_requis_expire_non_eligible(doc_type):
    records = complete_records(STUDENT_ID, **{doc_type.value: TODAY - timedelta(days=1)})
    readiness = compute_readiness(records, TODAY, cleared_internship())
    assert readiness.nremt_eligible is False
    assert readiness.missing_docs == [doc_type]


def test_eligibilite_couverture_combinatoire():
    """Éligible si et seulement si aucun document requis ne manque (toutes les combinaisons)."""
    internship = cleared_internship()
    for size in range(len(REQUIRED_DOC_TYPES) + 1):
        for missing in itertools.combinations(REQUIRED_DOC_TYPES, size):
            records = [r for r in complete_records(STUDENT_ID) if DocType(r.doc_type) not in missing]
            readiness = compute_readiness(records, TODAY, internship)
            assert readiness.nremt_eligible is (size == 0)
            assert set(readiness.missing_docs) == set(missing)


def test_document_expirant_reste_valide():
    records = complete_records(STUDENT_ID, bls=TODAY + timedelta(days=10), tb=TODAY + timedelta(days=90))
    readiness = compute_readiness(records, TODAY, cleared_internship())
    assert readiness.nremt_eligible is True
    assert [d.doc_type for d in readiness.expiring_docs] == [DocType.BLS]
    assert readiness.expiring_docs[0].expiration_date == TODAY + timedelta(days=10)


def test_type_de_document_inconnu_ignore():
    records = complete_records(STUDENT_ID)
    records.append(ComplianceRecord(student_id=STUDENT_ID, doc_type="fit_test", completed=False))
    readiness = compute_readiness(records, TODAY, cleared_internship())
    assert readiness.nremt_eligible is True


def test_doublon_le_meilleur_enregistrement_retenu():
    records = complete_records(STUDENT_ID)
    records.append(make_record(STUDENT_ID, DocType.TB, completed=False))
    readiness = compute_readiness(records, TODAY, cleared_internship())
    assert readiness.nremt_eligible is True


# ============================================================
# Bascule idempotente
# ============================================================

@pytest.mark.parametrize("expiration_offset", [None, -5, 5, 60])
def test_double_bascule_retrouve_la_classification(expiration_offset):
    expiration = TODAY + timedelta(days=expiration_offset) if expiration_offset is not None else None
    record = make_record(STUDENT_ID, DocType.TB, expiration_date=expiration)
    records = [r for r in complete_records(STUDENT_ID) if r.doc_type != "tb"] + [record]
    internship = cleared_internship()

    before = compute_readiness(records, TODAY, internship)
    record.completed = False
    toggled = compute_readiness(records, TODAY, internship)
    record.completed = True
    after = compute_readiness(records, TODAY, internship)

    assert DocType.TB in toggled.missing_docs
    assert after == before
