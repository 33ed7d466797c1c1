"""
Resource Capacity Planner
Joins a team roster against a project allocation sheet, computes per-person
and per-department utilisation, and projects department load across the next
three months and quarters.

Features:
  - Roster/project join with PM and numbered "Resource N" assignment slots
  - Individual capacity with over/under/optimal status against 1444 h/year
  - Executive summary with top-available and top-over-utilised rankings
  - Department view with rolling monthly and quarterly projections
  - CSV/Excel input, console summary, Excel report and PNG projection charts
"""

import argparse
import difflib
import io
import math
import numbers
import os
import re
import sys
from calendar import monthrange
from datetime import date, datetime

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from openpyxl import Workbook
from openpyxl.formatting.rule import CellIsRule
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter


# ── Constants ────────────────────────────────────────────────────────────────

_DIR = os.path.dirname(os.path.abspath(__file__))
DEFAULT_OUTDIR = os.path.join(_DIR, "output")

# Working hours in a year after standard time off
ANNUAL_CAPACITY_HOURS = 1444
OVER_UTILIZED_THRESHOLD = 100
UNDER_UTILIZED_THRESHOLD = 80
TOP_N = 5
PROJECTION_PERIODS = 3

STATUS_OVER = "over-utilized"
STATUS_UNDER = "under-utilized"
STATUS_OPTIMAL = "optimal"
STATUS_VALUES = [STATUS_OVER, STATUS_UNDER, STATUS_OPTIMAL]

PM_ROLE = "Project Manager"

ROSTER_COLUMNS = ["Department", "Name"]
PROJECT_COLUMNS = [
    "Initiative", "Planned Start Date", "Planned End Quarter", "Duration (Mth)",
    "Project Manager", "Project Manager Hours",
]

SLOT_RE = re.compile(r"^Resource\s+\d+$")
NUMBER_RE = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")
END_QUARTER_RE = re.compile(r"(\d{4})[\s,]+Q([1-4])")
YEAR_RE = re.compile(r"\d{4}")
NUMERIC_DATE_RE = re.compile(r"^\d{1,4}[/-]\d{1,2}[/-]\d{1,4}$")

DATE_FORMATS = (
    "%m/%d/%Y", "%Y-%m-%d", "%Y-%m-%d %H:%M:%S", "%m-%d-%Y", "%Y/%m/%d",
    "%b %d, %Y", "%B %d, %Y", "%d %b %Y", "%d %B %Y",
)

STATUS_COLORS = {
    STATUS_OVER: "#E53935",
    STATUS_UNDER: "#FB8C00",
    STATUS_OPTIMAL: "#43A047",
}

STYLE = {
    "font_family": ["Segoe UI", "DejaVu Sans"],
    "title_size": 18,
    "subtitle_size": 13,
    "label_size": 9.5,
    "tick_size": 8.5,
    "small_size": 7.5,
    "bg_color": "#FAFAFA",
    "panel_bg": "#FFFFFF",
    "text_primary": "#1A1A2E",
    "text_secondary": "#555555",
    "text_muted": "#999999",
    "grid_color": "#E0E0E0",
    "over_capacity_color": "#E53935",
    "under_capacity_colors": ["#43A047", "#1E88E5", "#8E24AA", "#FB8C00",
                              "#00BCD4", "#795548", "#607D8B", "#FF5722"],
    "capacity_line_color": "#1A1A2E",
    "dpi": 180,
}


# ── Style Helpers ────────────────────────────────────────────────────────────

def apply_style():
    """Configure matplotlib rcParams for consistent styling."""
    plt.rcParams.update({
        "font.family": "sans-serif",
        "font.sans-serif": STYLE["font_family"],
        "font.size": STYLE["label_size"],
        "axes.facecolor": STYLE["panel_bg"],
        "figure.facecolor": STYLE["bg_color"],
        "axes.edgecolor": STYLE["grid_color"],
        "axes.linewidth": 0.8,
        "axes.grid": False,
        "grid.color": STYLE["grid_color"],
        "grid.linewidth": 0.5,
        "grid.alpha": 0.3,
        "xtick.color": STYLE["text_secondary"],
        "ytick.color": STYLE["text_secondary"],
        "text.color": STYLE["text_primary"],
    })


def style_axes(ax, title="", ylabel="", show_grid_y=False):
    """Apply consistent axis styling to any subplot."""
    if title:
        ax.set_title(title, fontsize=STYLE["subtitle_size"], fontweight="bold",
                     color=STYLE["text_primary"], pad=12, loc="left")
    if ylabel:
        ax.set_ylabel(ylabel, fontsize=STYLE["label_size"], color=STYLE["text_secondary"])
    ax.spines["top"].set_visible(False)
    ax.spines["right"].set_visible(False)
    ax.spines["left"].set_linewidth(0.6)
    ax.spines["bottom"].set_linewidth(0.6)
    if show_grid_y:
        ax.grid(axis="y", alpha=0.15, linewidth=0.5, color=STYLE["grid_color"])
    ax.set_axisbelow(True)


def add_header_footer(fig, title, subtitle=""):
    """Add a title block and generation timestamp footer."""
    fig.suptitle(title, fontsize=STYLE["title_size"], fontweight="bold",
                 color=STYLE["text_primary"], y=0.98, x=0.04, ha="left")
    if subtitle:
        fig.text(0.04, 0.935, subtitle, fontsize=STYLE["small_size"] + 1,
                 color=STYLE["text_muted"], ha="left")
    fig.text(0.98, 0.008, f"Generated {datetime.now().strftime('%d %b %Y %H:%M')}",
             ha="right", fontsize=STYLE["small_size"], color=STYLE["text_muted"])
    fig.text(0.04, 0.008, "Resource Capacity Planner",
             ha="left", fontsize=STYLE["small_size"], color=STYLE["text_muted"])


# ── Value Parsing ────────────────────────────────────────────────────────────

def norm_date(d):
    """Normalise to midnight datetime."""
    if isinstance(d, pd.Timestamp):
        d = d.to_pydatetime()
    if not isinstance(d, (datetime, date)):
        raise TypeError(f"norm_date expected datetime, got {type(d).__name__}: {d!r}")
    return datetime(d.year, d.month, d.day)


def clean_str(val):
    """Return stripped string or empty string for NaN/None."""
    if val is None or (isinstance(val, float) and math.isnan(val)):
        return ""
    return str(val).strip()


def parse_number(val, default=0.0):
    """Lenient numeric parse: numbers pass through, strings use their leading
    decimal prefix ("12 months" -> 12.0). Anything else returns default."""
    if isinstance(val, bool):
        return default
    if isinstance(val, numbers.Real):
        val = float(val)
        return default if math.isnan(val) else val
    m = NUMBER_RE.match(clean_str(val))
    if not m:
        return default
    return float(m.group(1))


def parse_hours(val):
    """Hours cell as a float; blank or non-numeric counts as zero."""
    return parse_number(val, default=0.0)


def parse_duration(val):
    """Duration in months; zero, blank or non-numeric counts as one month."""
    return parse_number(val, default=0.0) or 1.0


def parse_start_date(val):
    """Parse a free-form start date. Returns midnight datetime or None."""
    if isinstance(val, (datetime, date, pd.Timestamp)):
        if pd.isna(val):
            return None
        return norm_date(val)
    text = clean_str(val)
    if not text:
        return None
    for fmt in DATE_FORMATS:
        try:
            return norm_date(datetime.strptime(text, fmt))
        except ValueError:
            pass
    # All-numeric dates are month-first only; a day-first reading is rejected
    if NUMERIC_DATE_RE.match(text) or not YEAR_RE.search(text):
        return None
    parsed = pd.to_datetime(text, errors="coerce")
    if pd.isna(parsed):
        return None
    return norm_date(parsed)


def parse_end_quarter(val):
    """Parse '2027, Q1' / '2027 Q1' to the last calendar day of that quarter."""
    m = END_QUARTER_RE.search(clean_str(val))
    if not m:
        return None
    year, quarter = int(m.group(1)), int(m.group(2))
    month = quarter * 3
    try:
        return datetime(year, month, monthrange(year, month)[1])
    except ValueError:
        return None


# ── Project Row Parsing ──────────────────────────────────────────────────────

class ParsedProject(dict):
    """A project row already split into fixed fields and assignment slots."""


def discover_slot_columns(columns):
    """Return the 'Resource N' slot labels among columns, in column order."""
    return [c for c in (clean_str(col) for col in columns) if SLOT_RE.match(c)]


def parse_project_row(row, row_num=None):
    """Split a project row into its fixed fields and ordered assignment slots."""
    if isinstance(row, ParsedProject):
        return row
    row = {clean_str(k): v for k, v in row.items()}
    assignments = []
    for label in discover_slot_columns(row.keys()):
        assignments.append((label, clean_str(row.get(label)), parse_hours(row.get(f"{label} Hours"))))
    return ParsedProject({
        "initiative": clean_str(row.get("Initiative")),
        "start_date": clean_str(row.get("Planned Start Date")),
        "end_quarter": clean_str(row.get("Planned End Quarter")),
        "duration": parse_duration(row.get("Duration (Mth)")),
        "project_manager": clean_str(row.get("Project Manager")),
        "project_manager_hours": parse_hours(row.get("Project Manager Hours")),
        "assignments": assignments,
        "_row": row_num,
    })


def parse_project_rows(rows):
    # Row numbers match the spreadsheet: header is row 1
    return [parse_project_row(row, row_num=idx + 2) for idx, row in enumerate(rows)]


# ── Roster/Project Join ──────────────────────────────────────────────────────

def build_resource_directory(roster_rows):
    """Map trimmed name -> department. A repeated name keeps its last department."""
    directory = {}
    for member in roster_rows:
        name = clean_str(member.get("Name"))
        if not name:
            continue
        directory[name] = clean_str(member.get("Department"))
    return directory


def iter_contributions(project):
    """Yield (resource_name, contribution) for the PM and every staffed slot."""
    initiative = project["initiative"]
    if project["project_manager"]:
        yield project["project_manager"], {
            "initiative": initiative,
            "hours": project["project_manager_hours"],
            "role": PM_ROLE,
        }
    for label, name, hours in project["assignments"]:
        if name and hours > 0:
            yield name, {"initiative": initiative, "hours": hours, "role": label}


def join_resources(roster_rows, project_rows):
    """Build name -> Resource from the roster and attribute project hours.

    Names absent from the roster contribute nothing."""
    directory = build_resource_directory(roster_rows)
    contributions = {name: [] for name in directory}
    for project in parse_project_rows(project_rows):
        for name, contribution in iter_contributions(project):
            if name in contributions:
                contributions[name].append(contribution)

    return {
        name: {
            "name": name,
            "department": department,
            "allocated_hours": sum(c["hours"] for c in contributions[name]),
            "projects": contributions[name],
        }
        for name, department in directory.items()
    }


# ── Individual Metrics & Executive Summary ───────────────────────────────────

def utilization_status(utilization):
    """Map a utilisation percentage to over-utilized, under-utilized or optimal."""
    if utilization > OVER_UTILIZED_THRESHOLD:
        return STATUS_OVER
    if utilization < UNDER_UTILIZED_THRESHOLD:
        return STATUS_UNDER
    return STATUS_OPTIMAL


def calculate_individual_capacity(resources):
    """Per-resource capacity records, in resource mapping order."""
    individual = []
    for resource in resources.values():
        allocated = resource["allocated_hours"]
        utilization = allocated / ANNUAL_CAPACITY_HOURS * 100
        individual.append({
            **resource,
            "annual_capacity": ANNUAL_CAPACITY_HOURS,
            "available_hours": ANNUAL_CAPACITY_HOURS - allocated,
            "utilization": utilization,
            "status": utilization_status(utilization),
        })
    return individual


def build_executive_summary(individual):
    """Aggregate totals plus top-N rankings.

    overall_utilization is NaN when there are no resources; callers
    displaying it must guard for that."""
    total_resources = len(individual)
    total_capacity = total_resources * ANNUAL_CAPACITY_HOURS
    total_allocated = sum(r["allocated_hours"] for r in individual)
    if total_capacity:
        overall = total_allocated / total_capacity * 100
    else:
        overall = float("nan")

    # sorted() is stable, so ties keep roster order
    top_available = sorted(individual, key=lambda r: r["available_hours"], reverse=True)[:TOP_N]
    over = [r for r in individual if r["utilization"] > OVER_UTILIZED_THRESHOLD]
    top_over = sorted(over, key=lambda r: r["utilization"], reverse=True)[:TOP_N]

    return {
        "total_resources": total_resources,
        "total_annual_capacity": total_capacity,
        "total_allocated_hours": total_allocated,
        "total_available_hours": total_capacity - total_allocated,
        "overall_utilization": overall,
        "over_utilized_count": sum(1 for r in individual if r["status"] == STATUS_OVER),
        "under_utilized_count": sum(1 for r in individual if r["status"] == STATUS_UNDER),
        "top_available": top_available,
        "top_over_utilized": top_over,
    }


def process_capacity_data(roster_rows, project_rows):
    """Individual capacity and executive summary. None until both tables exist."""
    if roster_rows is None or project_rows is None:
        return None
    individual = calculate_individual_capacity(join_resources(roster_rows, project_rows))
    return {
        "executive_summary": build_executive_summary(individual),
        "individual_capacity": individual,
    }


# ── Department Timeline Projection ───────────────────────────────────────────

def get_next_months(today, count=PROJECTION_PERIODS):
    """Calendar months starting with the month containing today."""
    months = []
    for i in range(count):
        year_offset, month_idx = divmod(today.month - 1 + i, 12)
        year, month = today.year + year_offset, month_idx + 1
        start = datetime(year, month, 1)
        months.append({
            "label": start.strftime("%b %Y"),
            "start_date": start,
            "end_date": datetime(year, month, monthrange(year, month)[1]),
        })
    return months


def get_next_quarters(today, count=PROJECTION_PERIODS):
    """Calendar quarters starting with the quarter containing today."""
    current_quarter = (today.month - 1) // 3
    quarters = []
    for i in range(count):
        offset = current_quarter + i
        year = today.year + offset // 4
        quarter = offset % 4 + 1
        start_month = (quarter - 1) * 3 + 1
        end_month = start_month + 2
        quarters.append({
            "label": f"{year} Q{quarter}",
            "start_date": datetime(year, start_month, 1),
            "end_date": datetime(year, end_month, monthrange(year, end_month)[1]),
        })
    return quarters


def is_project_active(project, period_start, period_end):
    """True when the project's start..end-quarter range overlaps the period.
    Projects with an unparseable start or end quarter are never active."""
    start = parse_start_date(project["start_date"])
    end = parse_end_quarter(project["end_quarter"])
    if start is None or end is None:
        return False
    return start <= period_end and end >= period_start


def monthly_hours(total_hours, duration):
    """Hours per month assuming an even spread over the declared duration."""
    return total_hours / duration


def _project_period(dept, period, months_per_period, capacity):
    # A project overlapping the period at all is credited a full period share
    allocated = 0.0
    for project in dept["projects"]:
        if is_project_active(project, period["start_date"], period["end_date"]):
            allocated += monthly_hours(project["total_hours"], project["duration"]) * months_per_period
    return {
        "period": period["label"],
        "allocated_hours": allocated,
        "capacity": capacity,
        "utilization": allocated / capacity * 100,
        "available_hours": capacity - allocated,
    }


def process_department_view(roster_rows, project_rows, today):
    """Department totals, initiatives and rolling month/quarter projections.

    today is injected so the projection windows are reproducible."""
    if roster_rows is None or project_rows is None:
        return None

    departments = {}
    home_department = {}
    for member in roster_rows:
        dept_name = clean_str(member.get("Department"))
        name = clean_str(member.get("Name"))
        # Attribution follows the first roster row bearing a name
        if name and name not in home_department:
            home_department[name] = dept_name
        if not dept_name or not name:
            continue
        dept = departments.setdefault(dept_name, {
            "name": dept_name,
            "resources": [],
            "total_capacity": 0,
            "allocated_hours": 0.0,
            "projects": [],
        })
        dept["resources"].append(name)
        dept["total_capacity"] += ANNUAL_CAPACITY_HOURS

    project_index = {name: {} for name in departments}
    for project in parse_project_rows(project_rows):
        for name, contribution in iter_contributions(project):
            dept = departments.get(home_department.get(name, ""))
            if dept is None:
                continue
            hours = contribution["hours"]
            dept["allocated_hours"] += hours
            entry = {"name": name, "hours": hours, "role": contribution["role"]}
            initiative = contribution["initiative"]
            existing = project_index[dept["name"]].get(initiative)
            if existing is None:
                existing = {
                    "initiative": initiative,
                    "start_date": project["start_date"],
                    "end_quarter": project["end_quarter"],
                    "duration": project["duration"],
                    "total_hours": hours,
                    "resources": [entry],
                }
                project_index[dept["name"]][initiative] = existing
                dept["projects"].append(existing)
            else:
                existing["total_hours"] += hours
                existing["resources"].append(entry)

    months = get_next_months(today)
    quarters = get_next_quarters(today)

    result = []
    for dept in departments.values():
        total_capacity = dept["total_capacity"]
        result.append({
            **dept,
            "resource_count": len(dept["resources"]),
            "utilization": dept["allocated_hours"] / total_capacity * 100,
            "available_hours": total_capacity - dept["allocated_hours"],
            "monthly_projections": [
                _project_period(dept, m, 1, total_capacity / 12) for m in months
            ],
            "quarterly_projections": [
                _project_period(dept, q, 3, total_capacity / 4) for q in quarters
            ],
        })
    return result


def run_pipeline(roster_rows, project_rows, today):
    """Full recompute: individual capacity, executive summary, departments."""
    if roster_rows is None or project_rows is None:
        return None
    projects = parse_project_rows(project_rows)
    result = process_capacity_data(roster_rows, projects)
    result["departments"] = process_department_view(roster_rows, projects, today)
    return result


# ── Data Loading ─────────────────────────────────────────────────────────────

def normalize_columns(df, expected):
    """Strip column names and rename case-insensitive matches to their canonical
    spelling. Returns the set of expected names still missing."""
    df.columns = [clean_str(c) for c in df.columns]
    lookup = {c.lower(): c for c in df.columns}
    renames = {}
    for canonical in expected:
        actual = lookup.get(canonical.lower())
        if actual is not None and actual != canonical:
            renames[actual] = canonical
    if renames:
        df.rename(columns=renames, inplace=True)
    return set(expected) - set(df.columns)


def load_table(filepath, sheet_name=None):
    """Read a CSV or Excel sheet with every cell as a string. None on failure."""
    ext = os.path.splitext(filepath)[1].lower()
    try:
        if ext in (".xlsx", ".xlsm"):
            return pd.read_excel(filepath, sheet_name=sheet_name or 0,
                                 dtype=str, keep_default_na=False)
        return pd.read_csv(filepath, dtype=str, keep_default_na=False)
    except Exception as e:
        print(f"  WARNING: Could not read {os.path.basename(filepath)}: {e}")
        return None


def _load_rows(filepath, required, label):
    df = load_table(filepath)
    if df is None or df.empty:
        return []
    missing = normalize_columns(df, required)
    if missing:
        print(f"  ERROR: {label} is missing column(s): {', '.join(sorted(missing))}. "
              f"Found: {', '.join(df.columns)}")
        return []
    return df.to_dict("records")


def load_roster(filepath):
    """Load Team Roster rows (Department, Name)."""
    return _load_rows(filepath, ROSTER_COLUMNS, "Team Roster")


def load_projects(filepath):
    """Load Project Data rows, including any 'Resource N' / 'Resource N Hours' pairs."""
    return _load_rows(filepath, PROJECT_COLUMNS, "Project Data")


# ── Input Validation ─────────────────────────────────────────────────────────

def validate_inputs(roster_rows, project_rows):
    """Check both tables for problems the engine silently tolerates.
    Returns (errors, warnings) lists."""
    errors = []
    warnings_ = []

    if not roster_rows:
        errors.append("Team Roster is empty. Add at least one Department/Name row.")
    if not project_rows:
        errors.append("Project Data is empty. Add at least one initiative.")
    if errors:
        return errors, warnings_

    seen = {}
    for idx, member in enumerate(roster_rows):
        name = clean_str(member.get("Name"))
        dept = clean_str(member.get("Department"))
        if not name:
            continue
        if name in seen:
            warnings_.append(f"Roster row {idx + 2}: '{name}' already listed under "
                             f"'{seen[name]}'; using '{dept}' for individual capacity.")
        seen[name] = dept

    known = list(seen)
    for project in parse_project_rows(project_rows):
        row = project["_row"]
        label = project["initiative"] or f"row {row}"
        if parse_start_date(project["start_date"]) is None:
            warnings_.append(f"Row {row}: '{label}' has unparseable start date "
                             f"{project['start_date']!r}; excluded from projections.")
        if parse_end_quarter(project["end_quarter"]) is None:
            warnings_.append(f"Row {row}: '{label}' has unparseable end quarter "
                             f"{project['end_quarter']!r}. Use 'YYYY Q#'.")

        names = [project["project_manager"]] + [name for _, name, _ in project["assignments"]]
        for name in names:
            if name and name not in seen:
                close = difflib.get_close_matches(name, known, n=1, cutoff=0.6)
                hint = f" Did you mean: '{close[0]}'?" if close else ""
                warnings_.append(f"Row {row}: '{name}' not in Team Roster; hours ignored.{hint}")

    for idx, row in enumerate(project_rows):
        row = {clean_str(k): v for k, v in row.items()}
        hour_cols = ["Project Manager Hours"] + [f"{s} Hours" for s in discover_slot_columns(row)]
        for col in hour_cols:
            raw = clean_str(row.get(col))
            if raw and not NUMBER_RE.match(raw):
                warnings_.append(f"Row {idx + 2}: '{col}' value {raw!r} is not a number; counted as 0.")

    return errors, warnings_


# ── Console Summary ──────────────────────────────────────────────────────────

class _TeeWriter:
    """Write to two streams simultaneously (for summary.txt capture)."""
    def __init__(self, a, b):
        self.a, self.b = a, b
    def write(self, data):
        self.a.write(data)
        self.b.write(data)
    def flush(self):
        self.a.flush()
        self.b.flush()


def format_pct(value):
    return f"{value:.1f}%" if math.isfinite(value) else "n/a"


def print_summary(result, departments=None):
    """Print executive summary statistics to console."""
    summary = result["executive_summary"]
    print()
    print("=" * 60)
    print("  EXECUTIVE SUMMARY")
    print("=" * 60)
    print(f"  Resources:     {summary['total_resources']}")
    print(f"  Capacity:      {summary['total_annual_capacity']:,.0f} h/year")
    print(f"  Allocated:     {summary['total_allocated_hours']:,.0f} h")
    print(f"  Available:     {summary['total_available_hours']:,.0f} h")
    print(f"  Utilisation:   {format_pct(summary['overall_utilization'])} overall")
    print(f"  Over-utilised: {summary['over_utilized_count']}")
    print(f"  Under-utilised: {summary['under_utilized_count']}")

    if summary["top_available"]:
        print()
        print("  Most available:")
        for r in summary["top_available"]:
            print(f"    {r['name']} ({r['department']}): {r['available_hours']:,.0f} h free")

    if summary["top_over_utilized"]:
        print()
        print("  Most over-utilised:")
        for r in summary["top_over_utilized"]:
            print(f"    {r['name']} ({r['department']}): {format_pct(r['utilization'])}")

    if departments:
        print()
        print("  By department:")
        for dept in departments:
            print(f"    {dept['name']}: {dept['resource_count']} "
                  f"{'person' if dept['resource_count'] == 1 else 'people'}, "
                  f"{format_pct(dept['utilization'])} annual, "
                  f"{len(dept['projects'])} initiative{'s' if len(dept['projects']) != 1 else ''}")
            monthly = ", ".join(f"{p['period']} {format_pct(p['utilization'])}"
                                for p in dept["monthly_projections"])
            quarterly = ", ".join(f"{p['period']} {format_pct(p['utilization'])}"
                                  for p in dept["quarterly_projections"])
            print(f"      Months:   {monthly}")
            print(f"      Quarters: {quarterly}")

    print("=" * 60)
    print()


# ── Excel Report ─────────────────────────────────────────────────────────────

def _cell_value(value):
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def export_workbook(result, departments, output_path):
    """Write the capacity report to an Excel workbook."""
    wb = Workbook()

    header_font = Font(bold=True, color="FFFFFF", size=11)
    header_fill = PatternFill(start_color="2E3B4E", end_color="2E3B4E", fill_type="solid")
    header_alignment = Alignment(horizontal="center", vertical="center")
    thin_border = Border(
        left=Side(style="thin"), right=Side(style="thin"),
        top=Side(style="thin"), bottom=Side(style="thin"),
    )

    def write_sheet(ws, headers, rows, widths, number_cols=()):
        ws.append(headers)
        for row in rows:
            ws.append([_cell_value(v) for v in row])
        for cell in ws[1]:
            cell.font = header_font
            cell.fill = header_fill
            cell.alignment = header_alignment
            cell.border = thin_border
        for row in ws.iter_rows(min_row=2, max_row=ws.max_row):
            for cell in row:
                cell.border = thin_border
                cell.alignment = Alignment(vertical="center")
                if cell.column in number_cols:
                    cell.number_format = "#,##0.0"
        for idx, width in enumerate(widths):
            ws.column_dimensions[get_column_letter(idx + 1)].width = width
        ws.freeze_panes = "A2"

    summary = result["executive_summary"]

    # ── Sheet 1: Executive Summary ──
    ws_summary = wb.active
    ws_summary.title = "Executive Summary"
    write_sheet(ws_summary, ["Metric", "Value"], [
        ["Total Resources", summary["total_resources"]],
        ["Total Annual Capacity (h)", summary["total_annual_capacity"]],
        ["Total Allocated Hours", summary["total_allocated_hours"]],
        ["Total Available Hours", summary["total_available_hours"]],
        ["Overall Utilization (%)", summary["overall_utilization"]],
        ["Over-utilized", summary["over_utilized_count"]],
        ["Under-utilized", summary["under_utilized_count"]],
    ], widths=[30, 16], number_cols=(2,))

    # ── Sheet 2: Individual Capacity ──
    ws_ind = wb.create_sheet("Individual Capacity")
    write_sheet(ws_ind, [
        "Name", "Department", "Annual Capacity", "Allocated Hours",
        "Available Hours", "Utilization (%)", "Status", "Projects",
    ], [
        [r["name"], r["department"], r["annual_capacity"], r["allocated_hours"],
         r["available_hours"], r["utilization"], r["status"], len(r["projects"])]
        for r in result["individual_capacity"]
    ], widths=[26, 18, 16, 16, 16, 15, 16, 10], number_cols=(4, 5, 6))

    last_row = max(ws_ind.max_row, 2)
    for status, color in STATUS_COLORS.items():
        hex_color = color.lstrip("#")
        ws_ind.conditional_formatting.add(
            f"G2:G{last_row}",
            CellIsRule(operator="equal", formula=[f'"{status}"'],
                       font=Font(bold=True, color=hex_color)))

    # ── Sheet 3: Departments ──
    departments = departments or []
    ws_dept = wb.create_sheet("Departments")
    write_sheet(ws_dept, [
        "Department", "Resources", "Total Capacity", "Allocated Hours",
        "Available Hours", "Utilization (%)", "Initiatives",
    ], [
        [d["name"], d["resource_count"], d["total_capacity"], d["allocated_hours"],
         d["available_hours"], d["utilization"], len(d["projects"])]
        for d in departments
    ], widths=[22, 12, 16, 16, 16, 15, 12], number_cols=(4, 5, 6))

    # ── Sheet 4: Projections ──
    ws_proj = wb.create_sheet("Projections")
    rows = []
    for d in departments:
        for kind, key in (("Month", "monthly_projections"), ("Quarter", "quarterly_projections")):
            for p in d[key]:
                rows.append([d["name"], kind, p["period"], p["capacity"], p["allocated_hours"],
                             p["available_hours"], p["utilization"]])
    write_sheet(ws_proj, [
        "Department", "Window", "Period", "Capacity", "Allocated Hours",
        "Available Hours", "Utilization (%)",
    ], rows, widths=[22, 10, 12, 14, 16, 16, 15], number_cols=(4, 5, 6, 7))

    out_dir = os.path.dirname(output_path)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)
    wb.save(output_path)
    print(f"  Excel report saved: {output_path}")


# ── Chart: Department Projections ────────────────────────────────────────────

def render_department_projections(departments, output_path, period="monthly"):
    """Render grouped per-department utilisation bars for the projection window."""
    if period not in ("monthly", "quarterly"):
        raise ValueError(f"period must be 'monthly' or 'quarterly', got {period!r}")
    if not departments:
        print("  No department data. Check: roster rows have both Department and Name.")
        return

    apply_style()
    key = f"{period}_projections"
    labels = [p["period"] for p in departments[0][key]]
    n_depts = len(departments)
    n_periods = len(labels)

    fig, ax = plt.subplots(figsize=(max(12, n_depts * n_periods * 0.9), 7),
                           facecolor=STYLE["bg_color"])
    x = np.arange(n_periods)
    bar_width = 0.8 / n_depts
    palette = STYLE["under_capacity_colors"]

    for didx, dept in enumerate(departments):
        utils = [p["utilization"] for p in dept[key]]
        offset = (didx - (n_depts - 1) / 2) * bar_width
        colors = [STYLE["over_capacity_color"] if u > OVER_UTILIZED_THRESHOLD
                  else palette[didx % len(palette)] for u in utils]
        bars = ax.bar(x + offset, utils, bar_width * 0.88, color=colors, alpha=0.85,
                      edgecolor="white", linewidth=0.5, label=dept["name"])
        for bar, u in zip(bars, utils):
            ax.text(bar.get_x() + bar.get_width() / 2, bar.get_height() + 1,
                    f"{u:.0f}%", ha="center", fontsize=STYLE["small_size"],
                    color=STYLE["text_secondary"])

    ax.axhline(OVER_UTILIZED_THRESHOLD, color=STYLE["capacity_line_color"],
               linewidth=1.5, linestyle="--", label="Capacity", zorder=5)

    ax.set_xticks(x)
    ax.set_xticklabels(labels, fontsize=STYLE["tick_size"])
    ax.legend(loc="upper right", fontsize=STYLE["small_size"], framealpha=0.9,
              edgecolor=STYLE["grid_color"], fancybox=True)
    max_util = max(max(p["utilization"] for p in d[key]) for d in departments)
    ax.set_ylim(0, max(max_util, OVER_UTILIZED_THRESHOLD) * 1.2)

    title = "Monthly" if period == "monthly" else "Quarterly"
    style_axes(ax, title=f"{title} Department Utilisation", ylabel="Utilisation (%)",
               show_grid_y=True)
    add_header_footer(fig, "Department Capacity Projection", f"{labels[0]} \u2014 {labels[-1]}")

    out_dir = os.path.dirname(output_path)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)
    fig.savefig(output_path, dpi=STYLE["dpi"], bbox_inches="tight", facecolor=STYLE["bg_color"])
    plt.close(fig)
    print(f"  {title} chart saved: {output_path}")


# ── Main ─────────────────────────────────────────────────────────────────────

def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Resource Capacity Planner \u2014 utilisation and department projections "
                    "from a team roster and project allocation sheet"
    )
    parser.add_argument("--roster", required=True,
                        help="Team Roster CSV/Excel file (Department, Name)")
    parser.add_argument("--projects", required=True,
                        help="Project Data CSV/Excel file")
    parser.add_argument("--outdir", default=DEFAULT_OUTDIR,
                        help="Output directory for reports (default: output/)")
    parser.add_argument("--today", default=None,
                        help="Projection anchor date YYYY-MM-DD (default: today)")
    parser.add_argument(
        "--reports", default=["all"], nargs="+",
        choices=["all", "summary", "excel", "monthly", "quarterly"],
        help="Which reports to generate (default: all)"
    )
    args = parser.parse_args(argv)

    for path in (args.roster, args.projects):
        if not os.path.exists(path):
            print(f"Error: Input file not found: {path}")
            sys.exit(1)

    if args.today:
        try:
            today = datetime.strptime(args.today, "%Y-%m-%d").date()
        except ValueError:
            print(f"  ERROR: Invalid --today date '{args.today}'. Use YYYY-MM-DD format.")
            sys.exit(1)
    else:
        today = date.today()

    print(f"Loading roster from: {args.roster}")
    roster = load_roster(args.roster)
    print(f"Loading projects from: {args.projects}")
    projects = load_projects(args.projects)
    print(f"  Roster rows: {len(roster)}")
    print(f"  Project rows: {len(projects)}")

    errors, warnings_ = validate_inputs(roster, projects)
    for w in warnings_:
        print(f"  WARNING: {w}")
    if errors:
        for e in errors:
            print(f"  ERROR: {e}")
        sys.exit(1)

    result = run_pipeline(roster, projects, today)
    departments = result["departments"]

    reports = args.reports
    gen_all = "all" in reports
    output_files = []
    os.makedirs(args.outdir, exist_ok=True)

    if gen_all or "summary" in reports:
        summary_capture = io.StringIO()
        _orig_stdout = sys.stdout
        sys.stdout = _TeeWriter(_orig_stdout, summary_capture)
        try:
            print_summary(result, departments)
        finally:
            sys.stdout = _orig_stdout
        summary_path = os.path.join(args.outdir, "summary.txt")
        with open(summary_path, "w", encoding="utf-8") as sf:
            sf.write(summary_capture.getvalue())
        output_files.append(summary_path)

    if gen_all or "excel" in reports:
        excel_path = os.path.join(args.outdir, "capacity_report.xlsx")
        export_workbook(result, departments, excel_path)
        output_files.append(excel_path)

    for period in ("monthly", "quarterly"):
        if (gen_all or period in reports) and departments:
            chart_path = os.path.join(args.outdir, f"department_{period}.png")
            render_department_projections(departments, chart_path, period)
            output_files.append(chart_path)

    if output_files:
        print()
        print("  Output:")
        for f in output_files:
            print(f"    {os.path.abspath(f)}")
    print("\nDone.")


if __name__ == "__main__":
    main()
