#!/usr/bin/env python3
"""
Student roster views - filtering, sorting, paging and summary statistics
over the student list returned by the API.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Mapping

import pandas as pd

from madrassa.config import ROSTER_PAGE_SIZE, STUDENT_STATUSES

# ============================================================================
# CONFIGURATION
# ============================================================================

ROSTER_COLUMNS = [
    'id',
    'studentId',
    'firstName',
    'lastName',
    'email',
    'phone',
    'gender',
    'dateOfBirth',
    'status',
    'className',
]

SEARCH_COLUMNS = ['firstName', 'lastName', 'email', 'studentId']

ALL = "all"

# ============================================================================
# FRAME CONSTRUCTION
# ============================================================================

def students_to_frame(students: Iterable[Mapping]) -> pd.DataFrame:
    """Student records from the API as a DataFrame with every roster column present"""
    df = pd.DataFrame(list(students))
    for col in ROSTER_COLUMNS:
        if col not in df.columns:
            df[col] = ""
    return df.fillna("")

# ============================================================================
# FILTER / SORT / PAGE
# ============================================================================

def filter_students(df, search="", status=ALL, class_name=ALL):
    """Search across name, email and student ID; then narrow by status and class"""

    mask = pd.Series(True, index=df.index)

    term = search.strip().lower()
    if term:
        matches = pd.Series(False, index=df.index)
        for col in SEARCH_COLUMNS:
            matches |= df[col].astype(str).str.lower().str.contains(term, regex=False)
        mask &= matches

    if status != ALL:
        mask &= df['status'] == status

    if class_name != ALL:
        mask &= df['className'] == class_name

    return df[mask]

def sort_students(df, by="lastName", ascending=True):
    """Case-insensitive sort on one roster column"""
    return df.sort_values(
        by=by,
        ascending=ascending,
        key=lambda col: col.astype(str).str.lower(),
        kind="stable",
    )

@dataclass
class RosterPage:
    rows: pd.DataFrame
    page: int
    page_size: int
    total_rows: int
    total_pages: int

def paginate(df, page=1, page_size=ROSTER_PAGE_SIZE):
    """Slice one page. Out-of-range page numbers are clamped."""

    total_rows = len(df)
    total_pages = max(1, -(-total_rows // page_size))
    page = min(max(page, 1), total_pages)
    start = (page - 1) * page_size

    return RosterPage(
        rows=df.iloc[start:start + page_size],
        page=page,
        page_size=page_size,
        total_rows=total_rows,
        total_pages=total_pages,
    )

# ============================================================================
# STATISTICS
# ============================================================================

def calculate_roster_stats(df):
    """Headline counts for the students screen"""

    total = len(df)
    status_counts = df['status'].value_counts()
    gender_counts = df['gender'].value_counts()

    stats = {
        'total_students': total,
        'active_count': int(status_counts.get('active', 0)),
        'male_count': int(gender_counts.get('male', 0)),
        'female_count': int(gender_counts.get('female', 0)),
        'status_counts': {s: int(status_counts.get(s, 0)) for s in STUDENT_STATUSES},
    }

    stats['active_pct'] = (stats['active_count'] / total * 100) if total > 0 else 0
    stats['female_pct'] = (stats['female_count'] / total * 100) if total > 0 else 0

    return stats

# ============================================================================
# SUMMARY REPORT
# ============================================================================

def generate_roster_summary(df, stats, school_name="Madrassa"):
    """Plain-text roster summary shown in the students screen's Samenvatting panel"""

    report = f"""
═══════════════════════════════════════════════════════════════════════════
STUDENT ROSTER SUMMARY
═══════════════════════════════════════════════════════════════════════════

School: {school_name}
Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}

Total Students: {stats['total_students']}
Active: {stats['active_count']} ({stats['active_pct']:.1f}%)
Male: {stats['male_count']}
Female: {stats['female_count']} ({stats['female_pct']:.1f}%)

═══════════════════════════════════════════════════════════════════════════
STATUS BREAKDOWN
═══════════════════════════════════════════════════════════════════════════

"""

    for status, count in stats['status_counts'].items():
        report += f"{status}: {count}\n"

    report += """
═══════════════════════════════════════════════════════════════════════════
STUDENTS PER CLASS
═══════════════════════════════════════════════════════════════════════════

"""

    by_class = df['className'].replace("", "(no class)").value_counts().sort_index()
    for class_name, count in by_class.items():
        report += f"{class_name}: {count}\n"

    report += "\n═══════════════════════════════════════════════════════════════════════════\n"

    return report
