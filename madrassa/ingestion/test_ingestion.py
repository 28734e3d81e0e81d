"""
Roster Import Pipeline Test Suite

Every test is labeled with the contract rule it enforces.
"""

import io
from datetime import date

import pandas as pd
import pytest

from madrassa.ingestion.errors import IngestionError, UnsupportedFormatError
from madrassa.ingestion.ingestion import ImportBatch, run_import
from madrassa.students.models import STUDENT_FIELDS, StudentDraft


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def csv_bytes(text: str) -> bytes:
    return text.encode("utf-8")


def xlsx_bytes(records) -> bytes:
    buffer = io.BytesIO()
    pd.DataFrame(records).to_excel(buffer, index=False, engine="openpyxl")
    return buffer.getvalue()


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------

class TestScenarios:
    def test_scenario_a_plain_csv(self):
        batch = run_import(csv_bytes("firstName,lastName,email\nAli,Hassan,ali@example.com\n"), "a.csv")
        assert batch.drafts == [
            StudentDraft(
                firstName="Ali",
                lastName="Hassan",
                email="ali@example.com",
                gender="male",
                country="België",
                status="active",
            )
        ]
        assert batch.rejections == []

    def test_scenario_b_missing_first_name(self):
        data = csv_bytes("firstName,lastName\nAli,Hassan\n,Jones\nSara,Smith\n")
        batch = run_import(data, "b.csv")
        assert batch.report.row_count == 3
        assert len(batch) == 2
        assert [r.row_number for r in batch.rejections] == [2]
        assert "firstName" in batch.rejections[0].reason
        assert "Jones" not in [d.lastName for d in batch.drafts]
        assert "1 rows skipped" in batch.report.flags

    def test_scenario_c_dutch_excel(self):
        data = xlsx_bytes([{"Voornaam": "Amina", "Achternaam": "Yousfi", "Geslacht": "vrouw"}])
        batch = run_import(data, "c.xlsx")
        assert len(batch) == 1
        draft = batch.drafts[0]
        assert draft.firstName == "Amina"
        assert draft.lastName == "Yousfi"
        assert draft.gender == "female"

    def test_scenario_e_pdf_rejected(self):
        with pytest.raises(UnsupportedFormatError) as exc_info:
            run_import(b"%PDF-1.4 ...", "roster.pdf")
        assert exc_info.value.reason == "Unsupported file format"


# ---------------------------------------------------------------------------
# RULE: N data rows in, N outcomes out, file order kept
# ---------------------------------------------------------------------------

class TestRowAccounting:
    @pytest.mark.parametrize("n", [1, 7, 40])
    def test_every_row_accounted_for(self, n):
        lines = ["firstName,lastName"] + [f"First{i},Last{i}" for i in range(n)]
        batch = run_import(csv_bytes("\n".join(lines) + "\n"), "n.csv")
        assert batch.report.row_count == n
        assert len(batch) + batch.report.rejected_count == n
        assert [d.firstName for d in batch.drafts] == [f"First{i}" for i in range(n)]

    def test_accepted_plus_rejected_equals_rows(self):
        data = csv_bytes(
            "firstName,lastName,email\n"
            "Ali,Hassan,\n"
            ",Jones,\n"
            "Sara,Smith,bad-email\n"
            "Omar,,\n"
            "Lina,Aziz,lina@example.com\n"
        )
        batch = run_import(data, "mixed.csv")
        assert batch.report.accepted_count == 2
        assert batch.report.rejected_count == 3
        assert [r.row_number for r in batch.rejections] == [2, 3, 4]

    def test_row_numbers_survive_blank_rows(self):
        """Rejection row numbers point at the line the operator sees in the file."""
        data = csv_bytes("firstName,lastName\nAli,Hassan\n\n\n,Jones\nSara,Smith\n")
        batch = run_import(data, "gaps.csv")
        assert [r.row_number for r in batch.rejections] == [4]
        assert batch.report.row_count == 3
        assert len(batch) == 2

    def test_excel_row_numbers_survive_empty_rows(self):
        data = xlsx_bytes([
            {"Voornaam": "Amina", "Achternaam": "Yousfi"},
            {"Voornaam": None, "Achternaam": None},
            {"Voornaam": None, "Achternaam": "Jones"},
        ])
        batch = run_import(data, "gaps.xlsx")
        assert [r.row_number for r in batch.rejections] == [3]

    def test_rejected_rows_never_in_batch(self):
        batch = run_import(csv_bytes("firstName,lastName\n  ,Jones\nAli,  \n"), "r.csv")
        assert batch.drafts == []
        assert batch.report.rejected_count == 2


# ---------------------------------------------------------------------------
# RULE: file-level problems halt with no batch
# ---------------------------------------------------------------------------

class TestHalts:
    def test_header_only_file(self):
        with pytest.raises(IngestionError) as exc_info:
            run_import(csv_bytes("firstName,lastName\n"), "empty.csv")
        assert exc_info.value.reason == "File contains no data rows"

    def test_no_name_columns(self):
        with pytest.raises(IngestionError) as exc_info:
            run_import(csv_bytes("Klas,Opmerking\n1A,ok\n"), "classes.csv")
        assert exc_info.value.missing_or_invalid_fields == ["firstName", "lastName"]

    def test_missing_last_name_column(self):
        with pytest.raises(IngestionError) as exc_info:
            run_import(csv_bytes("Voornaam\nAmina\n"), "half.csv")
        assert exc_info.value.missing_or_invalid_fields == ["lastName"]

    def test_halt_message_is_framed(self):
        with pytest.raises(IngestionError) as exc_info:
            run_import(csv_bytes("Klas\n1A\n"), "classes.csv")
        text = str(exc_info.value)
        assert "ROSTER IMPORT HALT" in text
        assert "classes.csv" in text


# ---------------------------------------------------------------------------
# RULE: everything surfaced in the readiness report
# ---------------------------------------------------------------------------

class TestReadinessReport:
    def test_unmatched_columns_flagged(self):
        batch = run_import(csv_bytes("Voornaam,Achternaam,Klas\nAmina,Yousfi,1A\n"), "r.csv")
        assert batch.report.unmatched_columns == ["Klas"]
        assert any("Klas" in f for f in batch.report.flags)

    def test_alias_map_recorded(self):
        batch = run_import(csv_bytes("Voornaam,Last Name\nAmina,Yousfi\n"), "r.csv")
        assert batch.report.alias_map == {"Voornaam": "firstName", "Last Name": "lastName"}

    def test_unparsed_date_flagged(self):
        batch = run_import(csv_bytes("firstName,lastName,dateOfBirth\nAli,Hassan,someday\n"), "r.csv")
        assert batch.drafts[0].dateOfBirth is None
        assert any("date(s) of birth not recognised" in f for f in batch.report.flags)

    def test_day_first_date_parsed(self):
        batch = run_import(csv_bytes("Voornaam,Achternaam,Geboortedatum\nAmina,Yousfi,12/03/2012\n"), "r.csv")
        assert batch.drafts[0].dateOfBirth == date(2012, 3, 12)

    def test_duplicate_student_id_flagged_not_removed(self):
        data = csv_bytes("studentId,firstName,lastName\nS1,Ali,Hassan\ns1,Ali,Hasan\n")
        batch = run_import(data, "dup.csv")
        assert len(batch) == 2
        assert any("Duplicate student ID 's1'" in f for f in batch.report.flags)

    def test_as_text_lists_everything(self):
        data = csv_bytes("Voornaam,Achternaam,Klas\nAmina,Yousfi,1A\n,Jones,1B\n")
        text = run_import(data, "r.csv").report.as_text()
        assert "ROSTER IMPORT READINESS REPORT" in text
        assert "Row 2:" in text
        assert "'Voornaam' → 'firstName'" in text
        assert "'Klas'" in text
        assert "FLAGS (all surfaced)" in text

    def test_skip_warning_logged(self, caplog):
        with caplog.at_level("WARNING"):
            run_import(csv_bytes("firstName,lastName\n,Jones\nAli,Hassan\n"), "r.csv")
        assert "1 rows skipped" in caplog.text


# ---------------------------------------------------------------------------
# ImportBatch
# ---------------------------------------------------------------------------

class TestImportBatch:
    def test_to_frame_columns_in_field_order(self):
        batch = run_import(csv_bytes("firstName,lastName\nAli,Hassan\n"), "r.csv")
        frame = batch.to_frame()
        assert list(frame.columns) == list(STUDENT_FIELDS)
        assert frame.loc[0, "firstName"] == "Ali"

    def test_to_frame_limit(self):
        lines = ["firstName,lastName"] + [f"F{i},L{i}" for i in range(15)]
        batch = run_import(csv_bytes("\n".join(lines)), "r.csv")
        assert len(batch.to_frame(limit=10)) == 10

    def test_same_file_same_batch(self):
        data = csv_bytes("Voornaam,Achternaam,Geslacht\nAmina,Yousfi,v\nAli,Hassan,m\n")
        first = run_import(data, "r.csv")
        second = run_import(data, "r.csv")
        assert first.drafts == second.drafts
        assert isinstance(first, ImportBatch)
