import re

import requests
from bs4 import BeautifulSoup
from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from results import grading

# CIV - 'B' HIST - 'C' B/MATH - 'D'
SUBJECT_GRADE = re.compile(r"([A-Z][\w/&.]*)\s*-\s*'([A-Z])'")


class Command(BaseCommand):
    help = "Recompute CSEE aggregates and divisions for a NECTA centre and report discrepancies"

    def add_arguments(self, parser):
        parser.add_argument("--year", type=int, required=True, help="Exam year (e.g. 2023)")
        parser.add_argument("--centre", type=str, required=True, help="Examination centre number (e.g. S0101)")
        parser.add_argument("--exam", type=str, default="csee", help="Exam type, only CSEE is supported")

    def parse_division_summary(self, soup):
        div_counts = {"I": 0, "II": 0, "III": 0, "IV": 0, "0": 0}
        division_table = None
        for table in soup.find_all('table'):
            if 'DIVISION PERFORMANCE SUMMARY' in table.get_text():
                division_table = table
                break

        if division_table:
            for row in division_table.find_all('tr'):
                cells = row.find_all(['td', 'th'])
                if len(cells) >= 6 and cells[0].get_text(strip=True).upper() == 'T':
                    try:
                        for key, cell in zip(div_counts, cells[1:6]):
                            div_counts[key] = int(cell.get_text(strip=True) or 0)
                    except ValueError:
                        pass
                    break

        return div_counts

    def parse_student_results(self, soup):
        students = []
        for table in soup.find_all('table'):
            text = table.get_text()
            if 'CNO' in text and 'SEX' in text and 'AGGT' in text and 'DIV' in text and 'DETAILED SUBJECTS' in text:
                rows = table.find_all('tr')
                for row in rows[1:]:  # Skip header
                    cells = row.find_all('td')
                    if len(cells) >= 5:
                        students.append({
                            'CNO': cells[0].get_text(strip=True),
                            'SEX': cells[1].get_text(strip=True),
                            'AGGT': cells[2].get_text(strip=True),
                            'DIV': cells[3].get_text(strip=True).upper(),
                            'DETAILED SUBJECTS': cells[4].get_text(" ", strip=True),
                        })
                break
        return students

    def check_candidate(self, candidate):
        grades = [grade for _, grade in SUBJECT_GRADE.findall(candidate['DETAILED SUBJECTS'])]
        selection, division = grading.aggregate_from_grades(grades, grading.O_LEVEL)
        published_aggt = int(candidate['AGGT'])
        return {
            'CNO': candidate['CNO'],
            'published_aggt': published_aggt,
            'published_div': candidate['DIV'],
            'aggt': selection.total,
            'div': division,
            'ok': selection.total == published_aggt and division == candidate['DIV'],
        }

    def handle(self, *args, **options):
        exam = options["exam"].lower()
        year = options["year"]
        centre = options["centre"].strip().upper()

        if exam != "csee":
            raise CommandError("Only CSEE results can be verified.")

        url = f"{settings.NECTA_BASE_URL.rstrip('/')}/{year}/{exam}/results/{centre.lower()}.htm"
        self.stdout.write(f"Fetching centre results: {url}")

        try:
            resp = requests.get(url, timeout=settings.NECTA_TIMEOUT)
            resp.raise_for_status()
        except requests.RequestException as e:
            raise CommandError(f"Failed to fetch {url}: {e}")

        soup = BeautifulSoup(resp.text, "html.parser")
        candidates = self.parse_student_results(soup)
        if not candidates:
            raise CommandError(f"No candidate results found for {centre}. The page structure may have changed.")

        published = self.parse_division_summary(soup)
        recomputed = dict.fromkeys(published, 0)
        checks = []
        skipped = 0

        for candidate in candidates:
            # absent and withheld candidates carry no aggregate
            if not candidate['AGGT'].isdigit():
                skipped += 1
                continue

            check = self.check_candidate(candidate)
            checks.append(check)
            if check['div'] in recomputed:
                recomputed[check['div']] += 1

            if not check['ok']:
                self.stdout.write(self.style.WARNING(
                    f"⚠️ {check['CNO']}: published AGGT {check['published_aggt']} DIV {check['published_div']}, "
                    f"recomputed AGGT {check['aggt']} DIV {check['div']}"
                ))

        mismatches = [check for check in checks if not check['ok']]
        self.stdout.write(self.style.SUCCESS(
            f"✅ Checked {len(checks)} candidates ({skipped} skipped), {len(mismatches)} mismatches."
        ))

        if any(published.values()):
            for division in published:
                self.stdout.write(f" → Division {division}: published {published[division]}, recomputed {recomputed[division]}")
        else:
            self.stdout.write(self.style.WARNING("⚠️ Division performance summary not found on the page."))

        filename = f"necta_check_{centre}_{year}.txt"
        with open(filename, "w", encoding="utf-8") as f:
            f.write("CNO - Published AGGT/DIV - Recomputed AGGT/DIV - Status\n")
            f.write("=" * 80 + "\n")
            for check in checks:
                status = "OK" if check['ok'] else "MISMATCH"
                f.write(
                    f"{check['CNO']} - {check['published_aggt']}/{check['published_div']} - "
                    f"{check['aggt']}/{check['div']} - {status}\n"
                )

        self.stdout.write(self.style.SUCCESS(f"✅ Report saved to {filename}"))
