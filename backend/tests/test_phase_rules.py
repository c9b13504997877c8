"""
Tests unitaires du moteur de règles de phases.
Couverture : statut dérivé, prolongation, retard, prochaine échéance,
qualité de données, intégrité, table de transitions.
"""

from datetime import date, timedelta

import pytest

from app.models.enums import InternshipPhase, MilestoneType, PhaseStatus
from app.schemas.compliance import Readiness
from app.services.phase_rules import (
    DataIntegrityError,
    check_transition,
    derive_phase_state,
    due_rank_key,
    effective_end_date,
)
from factories import TODAY, make_internship, make_phase_1, make_phase_2


def days(n: int) -> date:
    return TODAY + timedelta(days=n)


# ============================================================
# Statut dérivé
# ============================================================

def test_sans_placement_not_started():
    internship = make_internship(orientation_date=days(-30))
    state = derive_phase_state(internship, TODAY)
    assert state.status == PhaseStatus.NOT_STARTED
    assert state.needs_review is False


def test_phase_absente_traitee_comme_pre_internship():
    internship = make_internship(current_phase=None)
    state = derive_phase_state(internship, TODAY)
    assert state.phase == InternshipPhase.PRE_INTERNSHIP


def test_on_track_avec_evaluation_future():
    internship = make_phase_1(phase_1_eval_scheduled=days(10))
    state = derive_phase_state(internship, TODAY)
    assert state.status == PhaseStatus.ON_TRACK
    assert state.blocking_issues == []
    assert state.next_due_date == days(10)
    assert state.next_due_type == MilestoneType.PHASE_1_EVAL


def test_at_risk_evaluation_en_retard():
    internship = make_phase_1(phase_1_eval_scheduled=days(-3))
    state = derive_phase_state(internship, TODAY)
    assert state.status == PhaseStatus.AT_RISK
    assert [i.milestone_type for i in state.blocking_issues] == [MilestoneType.PHASE_1_EVAL]
    assert state.blocking_issues[0].days_overdue == 3


def test_evaluation_completee_jamais_en_retard():
    internship = make_phase_1(phase_1_eval_scheduled=days(-3), phase_1_eval_completed=True)
    state = derive_phase_state(internship, TODAY)
    assert state.status == PhaseStatus.ON_TRACK


def test_echeance_du_jour_pas_en_retard():
    internship = make_phase_1(phase_1_eval_scheduled=TODAY)
    state = derive_phase_state(internship, TODAY)
    assert state.status == PhaseStatus.ON_TRACK
    assert state.next_due_date == TODAY


def test_retard_d_une_phase_precedente_compte():
    """Une orientation jamais faite reste en retard une fois en phase 1."""
    internship = make_phase_1(orientation_date=days(-60), phase_1_eval_scheduled=days(20))
    state = derive_phase_state(internship, TODAY)
    assert state.status == PhaseStatus.AT_RISK
    assert state.blocking_issues[0].milestone_type == MilestoneType.ORIENTATION


def test_jalon_d_une_phase_future_pas_en_retard():
    """La réunion de clôture (phase 2) passée ne bloque pas un stage en phase 1."""
    internship = make_phase_1(closeout_meeting_date=days(-5), phase_1_eval_scheduled=days(5))
    state = derive_phase_state(internship, TODAY)
    assert state.status == PhaseStatus.ON_TRACK


def test_fin_de_stage_depassee():
    internship = make_phase_1(phase_1_eval_scheduled=days(5), expected_end_date=days(-4))
    state = derive_phase_state(internship, TODAY)
    assert state.status == PhaseStatus.AT_RISK
    assert MilestoneType.INTERNSHIP_END in [i.milestone_type for i in state.blocking_issues]


def test_termine():
    internship = make_phase_2(
        current_phase="completed",
        phase_2_eval_completed=True,
        closeout_completed=True,
        phase_2_eval_scheduled=days(-90),
    )
    state = derive_phase_state(internship, TODAY)
    assert state.status == PhaseStatus.COMPLETED
    assert state.blocking_issues == []
    assert state.needs_review is False


def test_retire():
    internship = make_phase_1(is_withdrawn=True, phase_1_eval_scheduled=days(-30))
    state = derive_phase_state(internship, TODAY)
    assert state.status == PhaseStatus.WITHDRAWN
    assert state.blocking_issues == []


# ============================================================
# Prolongation
# ============================================================

def test_prolongation_statut_extended_et_echeance():
    """Fin prévue dépassée mais prolongation en cours → extended, échéance = évaluation de prolongation."""
    internship = make_phase_1(
        is_extended=True,
        extension_eval_completed=False,
        expected_end_date=days(-10),
        extension_eval_date=days(5),
        phase_1_eval_scheduled=days(-20),
    )
    state = derive_phase_state(internship, TODAY)
    assert state.status == PhaseStatus.EXTENDED
    assert state.effective_end_date == days(5)
    assert state.next_due_date == days(5)
    assert state.next_due_type == MilestoneType.EXTENSION_EVAL
    assert MilestoneType.PHASE_1_EVAL not in [i.milestone_type for i in state.blocking_issues]
    assert MilestoneType.INTERNSHIP_END not in [i.milestone_type for i in state.blocking_issues]


def test_prolongation_sans_date_d_evaluation():
    internship = make_phase_1(is_extended=True, expected_end_date=days(30))
    state = derive_phase_state(internship, TODAY)
    assert state.status == PhaseStatus.EXTENDED
    assert state.data_quality_issues == [MilestoneType.EXTENSION_EVAL]
    assert effective_end_date(internship) == days(30)


def test_prolongation_terminee_reprend_la_fin_prevue():
    internship = make_phase_1(
        is_extended=True,
        extension_eval_completed=True,
        extension_eval_date=days(-9),
        expected_end_date=days(60),
        phase_1_eval_scheduled=days(7),
    )
    state = derive_phase_state(internship, TODAY)
    assert state.status == PhaseStatus.ON_TRACK
    assert state.effective_end_date == days(60)
    assert state.blocking_issues == []
    assert state.next_due_type == MilestoneType.PHASE_1_EVAL


def test_prolongation_terminee_fin_prevue_depassee():
    internship = make_phase_1(
        is_extended=True,
        extension_eval_completed=True,
        extension_eval_date=days(-9),
        expected_end_date=days(-3),
        phase_1_eval_scheduled=days(7),
    )
    state = derive_phase_state(internship, TODAY)
    assert state.status == PhaseStatus.AT_RISK
    assert [i.milestone_type for i in state.blocking_issues] == [MilestoneType.INTERNSHIP_END]
    assert state.blocking_issues[0].due_date == days(-3)


# ============================================================
# Classement des échéances
# ============================================================

@pytest.mark.parametrize("future_days", [1, 7, 30, 365, 5000])
def test_en_retard_toujours_avant_futur(future_days):
    overdue = due_rank_key(days(-1000), MilestoneType.NREMT_CLEARANCE, TODAY)
    future = due_rank_key(days(future_days), MilestoneType.ORIENTATION, TODAY)
    assert overdue < future


def test_prochaine_echeance_privilegie_le_retard():
    internship = make_phase_2(
        closeout_meeting_date=days(-2),
        phase_2_eval_scheduled=days(1),
    )
    state = derive_phase_state(internship, TODAY)
    assert state.next_due_type == MilestoneType.CLOSEOUT
    assert state.next_due_date == days(-2)


def test_egalite_de_date_ordre_des_phases():
    internship = make_phase_2(
        closeout_meeting_date=days(3),
        phase_2_eval_scheduled=days(3),
    )
    state = derive_phase_state(internship, TODAY)
    assert state.next_due_type == MilestoneType.PHASE_2_EVAL


# ============================================================
# Qualité de données et intégrité
# ============================================================

def test_evaluation_non_planifiee_signalee_sans_retard():
    internship = make_phase_1()
    state = derive_phase_state(internship, TODAY)
    assert state.status == PhaseStatus.ON_TRACK
    assert state.data_quality_issues == [MilestoneType.PHASE_1_EVAL]
    assert state.next_due_date is None


def test_phase_inconnue_leve_data_integrity_error():
    internship = make_internship(current_phase="phase_3_bonus")
    with pytest.raises(DataIntegrityError) as exc_info:
        derive_phase_state(internship, TODAY)
    assert exc_info.value.internship_id == internship.id


def test_phase_2_sans_evaluation_phase_1_a_revoir():
    internship = make_phase_1(current_phase="phase_2_evaluation")
    state = derive_phase_state(internship, TODAY)
    assert state.needs_review is True
    assert any("phase 1" in issue for issue in state.integrity_issues)


def test_dates_dans_le_desordre_a_revoir():
    internship = make_phase_2(
        phase_1_end_date=date(2026, 2, 15),
        phase_2_start_date=date(2026, 2, 1),
    )
    state = derive_phase_state(internship, TODAY)
    assert state.needs_review is True
    assert any("phase_2_start_date" in issue for issue in state.integrity_issues)


def test_phase_1_sans_placement_a_revoir():
    internship = make_internship(current_phase="phase_1_mentorship")
    state = derive_phase_state(internship, TODAY)
    assert state.needs_review is True


# ============================================================
# Éligibilité NREMT en phase 2
# ============================================================

def test_phase_2_non_eligible_nremt_bloquant():
    internship = make_phase_2(phase_2_eval_scheduled=days(10), course_completion_date=days(20))
    readiness = Readiness(nremt_eligible=False, missing_docs=[], missing_clearances=["drug_screen"])
    state = derive_phase_state(internship, TODAY, readiness)
    issues = [i for i in state.blocking_issues if i.milestone_type == MilestoneType.NREMT_CLEARANCE]
    assert len(issues) == 1
    assert issues[0].days_overdue == 0


def test_phase_2_eligible_nremt_non_bloquant():
    internship = make_phase_2(phase_2_eval_scheduled=days(10))
    readiness = Readiness(nremt_eligible=True)
    state = derive_phase_state(internship, TODAY, readiness)
    assert state.blocking_issues == []


# ============================================================
# Table de transitions
# ============================================================

def test_transition_sans_placement_refusee():
    reasons = check_transition(make_internship(), InternshipPhase.PHASE_1_MENTORSHIP)
    assert reasons == ["Date de placement manquante."]


def test_transition_autorisee():
    internship = make_internship(placement_date=days(-10))
    assert check_transition(internship, InternshipPhase.PHASE_1_MENTORSHIP) == []


def test_saut_de_phase_refuse():
    internship = make_internship(placement_date=days(-10))
    reasons = check_transition(internship, InternshipPhase.PHASE_2_EVALUATION)
    assert "non autorisée" in reasons[0]


def test_retour_en_arriere_refuse():
    reasons = check_transition(make_phase_2(), InternshipPhase.PHASE_1_MENTORSHIP)
    assert "non autorisée" in reasons[0]


def test_transition_stage_retire_refusee():
    reasons = check_transition(make_phase_1(is_withdrawn=True), InternshipPhase.PHASE_2_EVALUATION)
    assert "retiré" in reasons[0]


def test_transition_pendant_prolongation_refusee():
    internship = make_phase_1(phase_1_eval_completed=True, is_extended=True)
    reasons = check_transition(internship, InternshipPhase.PHASE_2_EVALUATION)
    assert any("Prolongation" in r for r in reasons)


def test_transition_vers_completed_exige_cloture():
    internship = make_phase_2(phase_2_eval_completed=True)
    reasons = check_transition(internship, InternshipPhase.COMPLETED)
    assert reasons == ["Réunion de clôture non complétée."]
