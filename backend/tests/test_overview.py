"""
Tests unitaires de la projection « vue d'ensemble clinique ».
"""

from datetime import date, timedelta

from app.models.enums import ClinicalStatus, MilestoneType, PhaseStatus
from app.services.overview import build_overview, clinical_status_for, select_internship
from factories import (
    CLEARANCES,
    TODAY,
    complete_records,
    make_internship,
    make_phase_1,
    make_phase_2,
    make_student,
)


def days(n: int) -> date:
    return TODAY + timedelta(days=n)


def row_for(rows, student):
    return next(r for r in rows if r.student_id == student.id)


# ============================================================
# Badge clinique
# ============================================================

def test_clinical_status_par_phase():
    assert clinical_status_for("pre_internship") == ClinicalStatus.PREPARING
    assert clinical_status_for("phase_1_mentorship") == ClinicalStatus.ACTIVE_INTERNSHIP
    assert clinical_status_for("phase_2_evaluation") == ClinicalStatus.ACTIVE_INTERNSHIP
    assert clinical_status_for("completed") == ClinicalStatus.COMPLETED


def test_clinical_status_phase_inconnue_not_started():
    assert clinical_status_for("phase_3_legacy") == ClinicalStatus.NOT_STARTED
    assert clinical_status_for(None) == ClinicalStatus.NOT_STARTED


def test_clinical_status_statut_prioritaire():
    assert clinical_status_for("phase_1_mentorship", PhaseStatus.NOT_STARTED) == ClinicalStatus.NOT_STARTED
    assert clinical_status_for("phase_1_mentorship", PhaseStatus.WITHDRAWN) == ClinicalStatus.NOT_STARTED


def test_clinical_status_programmes_emt_aemt():
    assert clinical_status_for("phase_1_mentorship", program="EMT") == ClinicalStatus.ACTIVE_CLINICALS
    assert clinical_status_for("phase_2_evaluation", program="AEMT") == ClinicalStatus.ACTIVE_CLINICALS
    assert clinical_status_for("phase_1_mentorship", program="PMD") == ClinicalStatus.ACTIVE_INTERNSHIP
    assert clinical_status_for("pre_internship", program="EMT") == ClinicalStatus.PREPARING
    assert clinical_status_for("completed", program="AEMT") == ClinicalStatus.COMPLETED


# ============================================================
# Lignes
# ============================================================

def test_phase_absente_badge_preparing():
    student = make_student()
    internship = make_internship(student_id=student.id, current_phase=None, placement_date=days(-10))

    row = build_overview([student], [internship], {}, TODAY)[0]

    assert row.status == PhaseStatus.ON_TRACK
    assert row.current_phase == "pre_internship"
    assert row.clinical_status == ClinicalStatus.PREPARING


def test_etudiant_emt_en_stage_active_clinicals():
    student = make_student(program="EMT")
    internship = make_phase_1(student_id=student.id, phase_1_eval_scheduled=days(20), **CLEARANCES)

    row = build_overview([student], [internship], {student.id: complete_records(student.id)}, TODAY)[0]

    assert row.status == PhaseStatus.ON_TRACK
    assert row.clinical_status == ClinicalStatus.ACTIVE_CLINICALS


def test_sans_placement_not_started_sans_alerte():
    student = make_student()
    internship = make_internship(student_id=student.id, orientation_date=days(-30))

    rows = build_overview([student], [internship], {}, TODAY)

    row = rows[0]
    assert row.clinical_status == ClinicalStatus.NOT_STARTED
    assert row.status == PhaseStatus.NOT_STARTED
    assert row.critical_count == row.warning_count == row.info_count == 0
    assert row.internship_id == internship.id


def test_sans_stage():
    student = make_student()

    rows = build_overview([student], [], {student.id: complete_records(student.id)}, TODAY)

    row = rows[0]
    assert row.internship_id is None
    assert row.status == PhaseStatus.NOT_STARTED
    assert row.clinical_status == ClinicalStatus.NOT_STARTED
    assert row.missing_doc_count == 0


def test_pre_internship_place_preparing():
    student = make_student()
    internship = make_internship(student_id=student.id, placement_date=days(-3), orientation_date=days(4))

    row = build_overview([student], [internship], {}, TODAY)[0]

    assert row.status == PhaseStatus.ON_TRACK
    assert row.clinical_status == ClinicalStatus.PREPARING
    assert row.next_due_date == days(4)
    assert row.next_due_type == MilestoneType.ORIENTATION


def test_phase_2_en_retard():
    student = make_student()
    internship = make_phase_2(student_id=student.id, phase_2_eval_scheduled=days(-9), **CLEARANCES)

    row = build_overview([student], [internship], {student.id: complete_records(student.id)}, TODAY)[0]

    assert row.status == PhaseStatus.AT_RISK
    assert row.clinical_status == ClinicalStatus.ACTIVE_INTERNSHIP
    assert row.nremt_eligible is True
    assert row.critical_count == 1
    assert row.needs_review is False


def test_termine():
    student = make_student()
    internship = make_phase_2(
        student_id=student.id,
        current_phase="completed",
        phase_2_eval_completed=True,
        closeout_completed=True,
        cleared_for_nremt=True,
    )

    row = build_overview([student], [internship], {}, TODAY)[0]

    assert row.status == PhaseStatus.COMPLETED
    assert row.clinical_status == ClinicalStatus.COMPLETED
    assert row.cleared_for_nremt is True


def test_stage_retire_seul():
    student = make_student()
    internship = make_phase_1(student_id=student.id, is_withdrawn=True, withdrawn_date=days(-10))

    row = build_overview([student], [internship], {}, TODAY)[0]

    assert row.status == PhaseStatus.WITHDRAWN
    assert row.clinical_status == ClinicalStatus.NOT_STARTED


def test_stage_actif_prioritaire_sur_retrait():
    student = make_student()
    withdrawn = make_phase_1(student_id=student.id, is_withdrawn=True, withdrawn_date=days(-100))
    active = make_phase_1(student_id=student.id, phase_1_eval_scheduled=days(20))

    internship, several = select_internship([withdrawn, active])

    assert internship is active
    assert several is False


# ============================================================
# Lignes dégradées
# ============================================================

def test_phase_inconnue_ligne_unknown_les_autres_continuent():
    bad_student = make_student(last_name="Albert")
    good_student = make_student(last_name="Zola")
    bad = make_internship(student_id=bad_student.id, current_phase="phase_3_legacy")
    good = make_phase_1(student_id=good_student.id, phase_1_eval_scheduled=days(10))

    rows = build_overview([good_student, bad_student], [bad, good], {}, TODAY)

    bad_row = row_for(rows, bad_student)
    assert bad_row.status == PhaseStatus.UNKNOWN
    assert bad_row.needs_review is True
    assert bad_row.clinical_status == ClinicalStatus.NOT_STARTED
    assert bad_row.current_phase == "phase_3_legacy"
    assert bad_row.critical_count == 1

    good_row = row_for(rows, good_student)
    assert good_row.status == PhaseStatus.ON_TRACK
    assert good_row.needs_review is False


def test_dates_incoherentes_ligne_a_revoir():
    student = make_student()
    internship = make_phase_2(
        student_id=student.id,
        phase_2_start_date=date(2026, 1, 10),
        phase_2_end_date=date(2026, 1, 2),
    )

    row = build_overview([student], [internship], {}, TODAY)[0]

    assert row.status == PhaseStatus.UNKNOWN
    assert row.needs_review is True
    assert row.clinical_status == ClinicalStatus.ACTIVE_INTERNSHIP


def test_plusieurs_stages_actifs_ligne_a_revoir():
    student = make_student()
    internships = [
        make_phase_1(student_id=student.id),
        make_phase_1(student_id=student.id),
    ]

    row = build_overview([student], internships, {}, TODAY)[0]

    assert row.status == PhaseStatus.UNKNOWN
    assert row.needs_review is True


# ============================================================
# Ordre et déterminisme
# ============================================================

def test_tri_par_nom_puis_prenom():
    students = [
        make_student(last_name="Martin", first_name="Zoé"),
        make_student(last_name="bernard", first_name="Luc"),
        make_student(last_name="Martin", first_name="Anna"),
    ]

    rows = build_overview(students, [], {}, TODAY)

    assert [(r.last_name, r.first_name) for r in rows] == [
        ("bernard", "Luc"),
        ("Martin", "Anna"),
        ("Martin", "Zoé"),
    ]


def test_deterministe():
    students = [make_student(last_name=n) for n in ("Petit", "Durand", "Leroy")]
    internships = [
        make_phase_2(student_id=students[0].id, phase_2_eval_scheduled=days(-3)),
        make_phase_1(student_id=students[1].id, phase_1_eval_scheduled=days(2)),
        make_internship(student_id=students[2].id, current_phase="??"),
    ]
    compliance = {students[0].id: complete_records(students[0].id, bls=days(5))}

    first = build_overview(students, internships, compliance, TODAY)
    second = build_overview(list(reversed(students)), list(reversed(internships)), compliance, TODAY)

    assert [r.model_dump() for r in first] == [r.model_dump() for r in second]
