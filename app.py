import logging
from datetime import date

import pandas as pd
import streamlit as st

from madrassa.config import GENDERS, PREVIEW_ROWS, ROSTER_PAGE_SIZE, STUDENT_STATUSES, load_settings
from madrassa.ingestion.errors import IngestionError
from madrassa.ingestion.gate import GateState, ImportGate
from madrassa.ingestion.ingestion import run_import
from madrassa.students.dialogs import (
    Creating,
    Deleting,
    DialogState,
    Editing,
    Importing,
    Viewing,
    choice_index,
    load_selected,
)
from madrassa.students.export import export_csv, export_excel, export_filename, export_pdf
from madrassa.students.repository import ApiError, StudentRepository
from madrassa.students.roster import (
    ALL,
    calculate_roster_stats,
    filter_students,
    generate_roster_summary,
    paginate,
    sort_students,
    students_to_frame,
)
from madrassa.students.validation import StudentValidationError, parse_date

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

# Page config
st.set_page_config(
    page_title="Studentenbeheer",
    page_icon="🎓",
    layout="wide",
)

# Session-scoped objects survive Streamlit reruns
if "repository" not in st.session_state:
    st.session_state.repository = StudentRepository(load_settings())
if "dialog" not in st.session_state:
    st.session_state.dialog = DialogState()
if "gate" not in st.session_state:
    st.session_state.gate = ImportGate()

repository: StudentRepository = st.session_state.repository
dialog: DialogState = st.session_state.dialog
gate: ImportGate = st.session_state.gate


# ----------------------------------------------------------------------------
# Dialog bodies
# ----------------------------------------------------------------------------

def student_form(existing=None):
    """Create/edit form. Returns the submitted payload or None."""
    existing = existing or {}
    with st.form("student_form"):
        col1, col2 = st.columns(2)
        with col1:
            first_name = st.text_input("Voornaam", value=existing.get("firstName") or "")
            email = st.text_input("Email", value=existing.get("email") or "")
            gender = st.selectbox(
                "Geslacht",
                options=list(GENDERS),
                index=choice_index(GENDERS, existing.get("gender")),
            )
        with col2:
            last_name = st.text_input("Achternaam", value=existing.get("lastName") or "")
            phone = st.text_input("Telefoon", value=existing.get("phone", "") or "")
            dob = st.date_input(
                "Geboortedatum",
                value=parse_date(existing.get("dateOfBirth")),
                min_value=date(1950, 1, 1),
            )
        status = st.selectbox(
            "Status",
            options=list(STUDENT_STATUSES),
            index=choice_index(STUDENT_STATUSES, existing.get("status")),
        )
        submitted = st.form_submit_button("Opslaan", type="primary")

    if not submitted:
        return None
    return {
        "firstName": first_name,
        "lastName": last_name,
        "email": email,
        "phone": phone or None,
        "gender": gender,
        "dateOfBirth": dob,
        "status": status,
    }


def save_student(payload, student_id=None):
    try:
        if student_id is None:
            repository.create(payload)
            st.success("Student toegevoegd")
        else:
            repository.update(student_id, payload)
            st.success("Student bijgewerkt")
    except StudentValidationError as e:
        for field_name, message in e.errors.items():
            st.error(f"{field_name}: {message}")
        return
    except ApiError as e:
        st.error(f"❌ {e}")
        return
    dialog.close()
    st.rerun()


def import_panel():
    st.markdown("### 📥 Studenten importeren")
    st.markdown("Upload a CSV or Excel file with one student per row and a header row.")

    if gate.state in (GateState.EMPTY, GateState.DONE):
        if gate.state is GateState.DONE and gate.result is not None:
            st.success(f"✅ Import voltooid: {gate.result.summary()}")
            for err in gate.result.errors:
                st.warning(f"Row {err.row}: {err.message}")

        uploaded_file = st.file_uploader(
            "Choose a file",
            type=["csv", "xlsx", "xls"],
            label_visibility="collapsed",
        )
        if uploaded_file is not None:
            try:
                batch = run_import(uploaded_file, uploaded_file.name)
            except IngestionError as e:
                st.error(f"❌ {e.reason}")
                st.code(str(e))
                return
            gate.load(batch)
            st.rerun()
        return

    batch = gate.batch
    report = batch.report
    st.info(
        f"**{report.file_name}**: {report.accepted_count} of {report.row_count} rows ready"
        + (f", {report.rejected_count} rows skipped" if report.rejected_count else "")
    )
    for flag in report.flags:
        st.warning(flag)

    shown, remaining = gate.preview(PREVIEW_ROWS)
    st.dataframe(batch.to_frame(limit=len(shown)), use_container_width=True)
    if remaining:
        st.caption(f"… and {remaining} more")
    with st.expander("Import report", expanded=False):
        st.code(report.as_text())

    if gate.state is GateState.FAILED:
        st.error(f"❌ Import mislukt: {gate.error}")
        if st.button("Opnieuw proberen"):
            gate.retry()
            st.rerun()
        return

    col1, col2 = st.columns(2)
    if gate.state is GateState.PREVIEWING:
        with col1:
            if st.button("Importeren", type="primary", disabled=not gate.can_confirm):
                gate.request_confirmation()
                st.rerun()
        with col2:
            if st.button("Wissen"):
                gate.clear()
                st.rerun()
    elif gate.state is GateState.CONFIRMING:
        st.warning(f"{len(batch)} studenten worden naar de server gestuurd. Doorgaan?")
        with col1:
            if st.button("Bevestigen", type="primary", disabled=not gate.can_submit):
                with st.spinner("Importeren..."):
                    gate.submit(repository)
                st.rerun()
        with col2:
            if st.button("Annuleren"):
                gate.cancel_confirmation()
                st.rerun()


# ----------------------------------------------------------------------------
# Page
# ----------------------------------------------------------------------------

st.markdown("# 🎓 Studentenbeheer")

try:
    students = repository.list()
except ApiError as e:
    st.error(f"❌ Could not load students: {e}")
    st.stop()

df = students_to_frame(students)
stats = calculate_roster_stats(df)

col1, col2, col3, col4 = st.columns(4)
with col1:
    st.metric("Totaal", stats["total_students"])
with col2:
    st.metric("Actief", stats["active_count"])
with col3:
    st.metric("Jongens", stats["male_count"])
with col4:
    st.metric("Meisjes", stats["female_count"])

with st.expander("Samenvatting", expanded=False):
    st.code(generate_roster_summary(df, stats))

# Filters
col1, col2, col3 = st.columns([3, 1, 1])
with col1:
    search = st.text_input("Zoeken", placeholder="Naam, email of student ID")
with col2:
    status_filter = st.selectbox("Status", options=[ALL] + list(STUDENT_STATUSES))
with col3:
    classes = sorted(c for c in df["className"].unique() if c)
    class_filter = st.selectbox("Klas", options=[ALL] + classes)

filtered = sort_students(filter_students(df, search, status_filter, class_filter))
page_number = st.number_input("Pagina", min_value=1, value=1, step=1)
page = paginate(filtered, int(page_number), ROSTER_PAGE_SIZE)
st.caption(f"Pagina {page.page} van {page.total_pages} ({page.total_rows} studenten)")
st.dataframe(page.rows, use_container_width=True, hide_index=True)

# Actions
col1, col2, col3, col4, col5 = st.columns(5)
with col1:
    if st.button("➕ Nieuwe student"):
        dialog.open(Creating())
with col2:
    if st.button("📥 Importeren"):
        dialog.open(Importing())
with col3:
    st.download_button("CSV", export_csv(filtered), export_filename("csv"), "text/csv")
with col4:
    st.download_button(
        "Excel",
        export_excel(filtered),
        export_filename("xlsx"),
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )
with col5:
    st.download_button("PDF", export_pdf(filtered), export_filename("pdf"), "application/pdf")

if not filtered.empty:
    labels = {
        int(row["id"]): f"{row['firstName']} {row['lastName']} ({row['studentId']})"
        for _, row in filtered.iterrows()
        if row["id"] != ""
    }
    if labels:
        col1, col2 = st.columns([3, 2])
        with col1:
            selected = st.selectbox("Student", options=list(labels), format_func=labels.get)
        with col2:
            action = st.radio("Actie", ["Bekijken", "Bewerken", "Verwijderen"], horizontal=True)
            if st.button("Openen"):
                kind = {"Bekijken": Viewing, "Bewerken": Editing, "Verwijderen": Deleting}[action]
                dialog.open(kind(selected))

st.markdown("---")

record = None
if dialog.selected_id is not None:
    record, load_error = load_selected(dialog, repository.get)
    if load_error:
        st.error(f"❌ {load_error}")

if dialog.is_open(Creating):
    st.markdown("### Nieuwe student")
    payload = student_form()
    if payload is not None:
        save_student(payload)

elif dialog.is_open(Editing):
    st.markdown("### Student bewerken")
    payload = student_form(record)
    if payload is not None:
        save_student(payload, dialog.selected_id)

elif dialog.is_open(Viewing):
    st.markdown(f"### {record.get('firstName', '')} {record.get('lastName', '')}")
    st.table(pd.Series(record, name="").astype(str))

elif dialog.is_open(Deleting):
    st.warning(f"Student {record.get('firstName', '')} {record.get('lastName', '')} verwijderen?")
    col1, col2 = st.columns(2)
    with col1:
        if st.button("Verwijderen", type="primary"):
            try:
                repository.delete(dialog.selected_id)
            except ApiError as e:
                st.error(f"❌ {e}")
            else:
                dialog.close()
                st.rerun()
    with col2:
        if st.button("Annuleren"):
            dialog.close()
            st.rerun()

elif dialog.is_open(Importing):
    import_panel()
    if gate.state is not GateState.SUBMITTING and st.button("Sluiten"):
        gate.close()
        dialog.close()
        st.rerun()
