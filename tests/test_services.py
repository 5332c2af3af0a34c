import pytest

from results import grading, services
from results.models import Mark, SchoolClass


@pytest.fixture
def o_level_cohort(o_level_class, o_level_subjects, exam, make_student, enter_marks):
    strong = make_student(o_level_class, "S001", "Neema", "Joseph")
    average = make_student(o_level_class, "S002", "Baraka", "John")
    absent = make_student(o_level_class, "S003", "Halima", "Said")
    enter_marks(strong, exam, o_level_subjects, [80] * 7)
    enter_marks(average, exam, o_level_subjects, [60] * 7)
    enter_marks(absent, exam, o_level_subjects[:2], [55, None])
    return strong, average, absent


@pytest.mark.django_db
class TestSubjectResults:

    def test_results_follow_subject_code_order(self, o_level_cohort, exam, o_level_subjects):
        strong, _, _ = o_level_cohort
        results = services.subject_results(strong, exam)

        assert [r.subject_name for r in results] == [s.name for s in o_level_subjects]
        assert all(r.scheme == grading.O_LEVEL for r in results)
        assert all(r.grade == "A" for r in results)

    def test_absent_marks_stay_ungraded(self, o_level_cohort, exam):
        _, _, absent = o_level_cohort
        results = services.subject_results(absent, exam)
        assert [r.grade for r in results] == ["C", grading.UNGRADED]


@pytest.mark.django_db
class TestClassResults:

    def test_students_are_ranked(self, o_level_cohort, o_level_class, exam):
        strong, average, absent = o_level_cohort
        ranked = services.class_results(o_level_class, exam)

        assert [student for student, _ in ranked] == [strong, average, absent]
        assert [summary.rank for _, summary in ranked] == [1, 2, 3]
        assert [summary.division for _, summary in ranked] == ["I", "II", grading.INCOMPLETE]
        assert ranked[0][1].best_n_points == 7

    def test_student_without_marks_is_incomplete(self, o_level_class, exam, make_student):
        student = make_student(o_level_class, "S010")
        [(only, summary)] = services.class_results(o_level_class, exam)

        assert only == student
        assert summary.status == grading.INCOMPLETE
        assert summary.average_marks is None

    def test_class_summary(self, o_level_cohort, o_level_class, exam):
        ranked, summary = services.class_summary(o_level_class, exam)

        assert len(ranked) == 3
        assert summary.division_distribution["I"] == 1
        assert summary.division_distribution["II"] == 1
        assert summary.incomplete == 1
        assert summary.pass_rate == pytest.approx(2 / 3)
        assert summary.subjects[0].registered == 3

    def test_student_report_is_ranked_against_the_class(self, o_level_cohort, exam):
        _, average, _ = o_level_cohort
        summary = services.student_report(average, exam)
        assert summary.rank == 2
        assert summary.division == "II"

    def test_a_level_division_uses_principal_subjects(self, a_level_class, a_level_subjects, exam, make_student, enter_marks):
        student = make_student(a_level_class, "A001", "Juma", "Ally")
        # ADVMATH, CHEM, GS, KISWA, PHY
        enter_marks(student, exam, a_level_subjects, [82, 55, 95, 60, 70])

        summary = services.student_report(student, exam)

        assert summary.scheme == grading.A_LEVEL
        assert summary.best_n_points == 9
        assert summary.division == "I"
        assert summary.rank == 1


@pytest.mark.django_db
class TestSubmitMarks:

    def test_saves_valid_rows(self, o_level_class, o_level_subjects, exam, make_student):
        student = make_student(o_level_class, "S001")
        entries = [
            {"student": student.pk, "subject": o_level_subjects[0].pk, "marks_obtained": 68},
            {"student": student.pk, "subject": o_level_subjects[1].pk, "marks_obtained": ""},
        ]

        saved, errors = services.submit_marks(exam, entries)

        assert errors == []
        assert len(saved) == 2
        assert saved[0].grade == "B"
        assert saved[0].points == 2
        assert saved[1].marks_obtained is None
        assert saved[1].grade == grading.UNGRADED

    def test_resubmission_updates_the_existing_mark(self, o_level_class, o_level_subjects, exam, make_student):
        student = make_student(o_level_class, "S001")
        entry = {"student": student.pk, "subject": o_level_subjects[0].pk, "marks_obtained": 40}
        services.submit_marks(exam, [entry])
        services.submit_marks(exam, [{**entry, "marks_obtained": 76, "comment": "Re-marked"}])

        mark = Mark.objects.get(student=student, exam=exam)
        assert mark.marks_obtained == 76
        assert mark.comment == "Re-marked"
        assert mark.grade == "A"

    def test_bad_rows_do_not_stop_the_batch(self, o_level_class, o_level_subjects, a_level_subjects, exam, make_student):
        student = make_student(o_level_class, "S001")
        entries = [
            {"student": student.pk, "subject": o_level_subjects[0].pk, "marks_obtained": 150},
            {"student": 9999, "subject": o_level_subjects[0].pk, "marks_obtained": 50},
            {"student": student.pk, "subject": a_level_subjects[0].pk, "marks_obtained": 50},
            {"student": student.pk, "subject": o_level_subjects[1].pk, "marks_obtained": 50},
            "not a row",
        ]

        saved, errors = services.submit_marks(exam, entries)

        assert len(saved) == 1
        assert saved[0].subject == o_level_subjects[1]
        assert [error["index"] for error in errors] == [0, 1, 2, 4]
        assert "marks_obtained" in errors[0]["errors"]
        assert "student" in errors[1]["errors"]
        assert "subject" in errors[2]["errors"]
        assert Mark.objects.count() == 1


@pytest.mark.django_db
class TestSubjectCombinations:

    def test_subject_outside_the_combination_is_rejected(self, a_level_class, a_level_subjects, pcm, history, exam, make_student):
        student = make_student(a_level_class, "A001", "Juma", "Ally", combination=pcm)
        kiswahili = next(subject for subject in a_level_subjects if subject.code == "KISWA")
        entries = [
            {"student": student.pk, "subject": history.pk, "marks_obtained": 55},
            {"student": student.pk, "subject": kiswahili.pk, "marks_obtained": 70},
        ]

        saved, errors = services.submit_marks(exam, entries)

        assert saved == []
        assert [error["index"] for error in errors] == [0, 1]
        assert "PCM" in str(errors[0]["errors"]["subject"][0])
        assert Mark.objects.count() == 0

    def test_combination_subjects_are_accepted(self, a_level_class, a_level_subjects, pcm, exam, make_student):
        student = make_student(a_level_class, "A001", combination=pcm)
        entries = [
            {"student": student.pk, "subject": subject.pk, "marks_obtained": 65}
            for subject in a_level_subjects
            if subject.code in ("ADVMATH", "CHEM", "GS", "PHY")
        ]

        saved, errors = services.submit_marks(exam, entries)

        assert errors == []
        assert len(saved) == 4

    def test_a_level_student_needs_a_combination(self, a_level_class, a_level_subjects, exam, make_student):
        student = make_student(a_level_class, "A001")

        saved, errors = services.submit_marks(
            exam, [{"student": student.pk, "subject": a_level_subjects[0].pk, "marks_obtained": 65}]
        )

        assert saved == []
        assert "student" in errors[0]["errors"]

    def test_o_level_student_without_combination_is_accepted(self, o_level_class, o_level_subjects, exam, make_student):
        student = make_student(o_level_class, "S001")
        saved, errors = services.submit_marks(
            exam, [{"student": student.pk, "subject": o_level_subjects[0].pk, "marks_obtained": 65}]
        )
        assert len(saved) == 1
        assert errors == []

    def test_principal_flag_comes_from_the_combination(self, a_level_class, a_level_subjects, make_combination, exam, make_student, enter_marks):
        subjects = {subject.code: subject for subject in a_level_subjects}
        # Chemistry is principal on the subject but subsidiary in this combination
        pmc = make_combination("PMC", [subjects["PHY"], subjects["ADVMATH"]], [subjects["CHEM"]])
        student = make_student(a_level_class, "A001", combination=pmc)
        enter_marks(student, exam, [subjects["CHEM"], subjects["PHY"]], [70, 70])

        flags = {result.subject_name: result.is_principal for result in services.subject_results(student, exam)}

        assert flags == {"Chemistry": False, "Physics": True}

    def test_subjects_outside_the_combination_do_not_count(self, a_level_class, a_level_subjects, pcm, exam, make_student, enter_marks):
        student = make_student(a_level_class, "A001", "Juma", "Ally", combination=pcm)
        # ADVMATH A(5), CHEM D(2), GS, KISWA S(0.5) outside PCM, PHY B(4)
        enter_marks(student, exam, a_level_subjects, [82, 55, 95, 36, 70])

        results = services.subject_results(student, exam)
        summary = services.student_report(student, exam)

        assert [r.is_principal for r in results] == [True, True, False, False, True]
        assert summary.best_n_points == 11
        assert summary.division == "II"

    def test_students_without_combination_fall_back_to_subject_flags(self, a_level_class, a_level_subjects, exam, make_student, enter_marks):
        student = make_student(a_level_class, "A002")
        enter_marks(student, exam, a_level_subjects, [82, 55, 95, 36, 70])

        summary = services.student_report(student, exam)

        assert summary.best_n_points == 6.5
        assert summary.division == "I"


@pytest.mark.django_db
class TestFormSummary:

    def test_streams_are_ranked_together(self, o_level_class, o_level_subjects, exam, make_student, enter_marks):
        stream_b = SchoolClass.objects.create(name="Form 2B", form=2, education_level=grading.O_LEVEL, academic_year="2024")
        first_in_a = make_student(o_level_class, "S001")
        second_in_b = make_student(stream_b, "S002")
        first_in_b = make_student(stream_b, "S003")
        enter_marks(first_in_a, exam, o_level_subjects, [80] * 7)
        enter_marks(second_in_b, exam, o_level_subjects, [60] * 7)
        enter_marks(first_in_b, exam, o_level_subjects, [90] * 7)

        streams, ranked, summary = services.form_summary(2, exam)

        assert [school_class.name for school_class, _ in streams] == ["Form 2A", "Form 2B"]
        assert [stream.total_students for _, stream in streams] == [1, 2]
        assert [student for student, _ in ranked] == [first_in_b, first_in_a, second_in_b]
        assert [result.rank for _, result in ranked] == [1, 2, 3]
        assert summary.total_students == 3
        assert summary.division_distribution["I"] == 2
        assert summary.pass_rate == 1.0

    def test_academic_year_filter(self, o_level_class, exam, make_student):
        SchoolClass.objects.create(name="Form 2A", form=2, education_level=grading.O_LEVEL, academic_year="2023")
        make_student(o_level_class, "S001")

        streams, ranked, _ = services.form_summary(2, exam, academic_year="2024")

        assert [school_class.academic_year for school_class, _ in streams] == ["2024"]
        assert len(ranked) == 1

    def test_unknown_form(self, exam):
        streams, ranked, summary = services.form_summary(6, exam)
        assert streams == []
        assert ranked == []
        assert summary.total_students == 0
