from django.core.management.base import BaseCommand, CommandError

from results import services
from results.models import Exam, SchoolClass


def _fmt(value):
    return "-" if value is None else f"{value:.2f}"


class Command(BaseCommand):
    help = "Rank a class for an exam and save the result sheet"

    def add_arguments(self, parser):
        parser.add_argument("--exam", type=int, required=True, help="Exam id")
        parser.add_argument("--class", dest="class_id", type=int, required=True, help="Class id")

    def handle(self, *args, **options):
        try:
            exam = Exam.objects.get(pk=options["exam"])
            school_class = SchoolClass.objects.get(pk=options["class_id"])
        except (Exam.DoesNotExist, SchoolClass.DoesNotExist) as e:
            raise CommandError(str(e))

        ranked, summary = services.class_summary(school_class, exam)
        if not ranked:
            raise CommandError(f"{school_class} has no students.")

        lines = []
        for student, result in ranked:
            rank = result.rank if result.rank is not None else "-"
            points = result.best_n_points if result.best_n_points is not None else "-"
            lines.append(
                f"{rank}. {student.admission_number} {student.full_name} - "
                f"AVG: {_fmt(result.average_marks)} - POINTS: {points} - DIV: {result.division}"
            )

        self.stdout.write(f"\n{school_class} - {exam}")
        for line in lines:
            self.stdout.write(line)

        divisions = ", ".join(f"{division}: {count}" for division, count in summary.division_distribution.items())
        footer = (
            f"Divisions ({divisions}) - Incomplete: {summary.incomplete} - Invalid: {summary.invalid}\n"
            f"Class average: {_fmt(summary.class_average)} - Pass rate: {summary.pass_rate * 100:.1f}%"
        )
        self.stdout.write(footer)

        filename = f"class_results_{school_class.pk}_{exam.pk}.txt"
        with open(filename, "w", encoding="utf-8") as f:
            f.write(f"{school_class} - {exam}\n")
            f.write("Rank. Admission No. Name - Average - Points - Division\n")
            f.write("=" * 80 + "\n")
            for line in lines:
                f.write(line + "\n")
            f.write("=" * 80 + "\n")
            f.write(footer + "\n")

        self.stdout.write(self.style.SUCCESS(f"✅ Results saved to {filename}"))
