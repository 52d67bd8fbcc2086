# ===========================
# Report Generation - canned stakeholder reports and comment exports
# ===========================
#
# Reports are built from a fixed dataset; they do not read any uploaded
# file. The only report built from real data is comments_to_csv(), used
# by the analysis download endpoint and the dashboard.
#
# ===========================

## --- 1. Imports ---

# --- Standard Library ---
import base64
import csv
import html
import io
import json
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional

# --- Third-Party Libraries ---
import matplotlib
matplotlib.use("Agg") # Use 'Agg' backend for non-GUI server environment
import matplotlib.pyplot as plt
import pandas as pd
from pydantic.alias_generators import to_camel

## --- 2. Constants ---

REPORT_TYPE_NAMES = {
    "summary": "Executive Summary",
    "detailed": "Detailed Analysis",
    "trends": "Trend Analysis",
    "language": "Language Report",
}
SUPPORTED_FORMATS = ("json", "csv", "xlsx", "pdf")
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
ANALYSIS_VERSION = "1.0.0"
DEFAULT_DATE_RANGE = "30d"

SENTIMENT_COLORS = {
    "supportive": "#10B981",
    "critical": "#EF4444",
    "suggestion": "#0069FF",
    "irrelevant": "#8c8c8c",
}

BASE_TOTAL_COMMENTS = 15847
BASE_SUMMARY = {
    "sentiment_distribution": {"supportive": 6234, "critical": 4521, "suggestion": 3892, "irrelevant": 1200},
    "emotion_distribution": {"optimism": 5234, "concern": 4521, "trust": 3892, "anger": 2200},
    "language_distribution": {"english": 8234, "hindi": 4521, "tamil": 1892, "telugu": 1200},
}
BASE_KEY_FINDINGS = [
    "Digital Payment Systems: Highest priority suggestion with 95% support score",
    "Compliance Burden: Major concern for startups, mentioned 189 times",
    "Multilingual Support: Critical need identified across all language groups",
    "Peak Activity: Most comments received between 11:00-13:00",
]
BASE_PRIORITY_SUGGESTIONS = [
    {"rank": 1, "text": "Implement digital payment systems for small business registration", "priority": 95, "frequency": 234, "sentiment": "supportive"},
    {"rank": 2, "text": "Reduce compliance burden for startups in first year", "priority": 92, "frequency": 189, "sentiment": "suggestion"},
    {"rank": 3, "text": "Provide multilingual support for all government forms", "priority": 88, "frequency": 167, "sentiment": "critical"},
]
BASE_CONTROVERSIAL_TOPICS = [
    {"topic": "Tax rates for small businesses", "supportive": 45, "critical": 55, "total_mentions": 456},
    {"topic": "Digital documentation requirements", "supportive": 62, "critical": 38, "total_mentions": 234},
]

## --- 3. Errors ---

class ReportRequestError(ValueError):
    """Export request is missing required parameters."""


class ReportFormatError(ValueError):
    """Export format is not one of SUPPORTED_FORMATS."""

## --- 4. Report Data Models ---
# One dataclass per report type; build_report() picks the variant.

def _camelize(value):
    """Recursively converts snake_case dict keys to the camelCase wire format."""
    if isinstance(value, dict):
        return {to_camel(k): _camelize(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_camelize(v) for v in value]
    return value


@dataclass
class ReportData:
    """Fields shared by every report type."""
    report_type: str
    date_range: Optional[str]
    generated_at: str
    total_comments: int
    summary: Dict[str, Dict[str, int]]
    key_findings: List[str]
    priority_suggestions: List[Dict]
    controversial_topics: List[Dict]

    sections: List[str] = field(default_factory=list, init=False)

    @property
    def title(self) -> str:
        return REPORT_TYPE_NAMES.get(self.report_type, self.report_type)

    @property
    def sample_comments(self) -> List[Dict]:
        return []

    def to_dict(self) -> Dict:
        data = {
            "metadata": {
                "report_type": self.report_type,
                "date_range": self.date_range,
                "generated_at": self.generated_at,
                "total_comments": self.total_comments,
                "analysis_version": ANALYSIS_VERSION,
            },
            "summary": self.summary,
            "key_findings": self.key_findings,
            "priority_suggestions": self.priority_suggestions,
            "controversial_topics": self.controversial_topics,
        }
        if self.sections:
            data["sections"] = self.sections
        data.update(self._extra())
        return _camelize(data)

    def _extra(self) -> Dict:
        return {}


@dataclass
class SummaryReport(ReportData):
    def __post_init__(self):
        self.sections = ["Executive Summary", "Key Metrics", "Priority Recommendations"]


@dataclass
class DetailedReport(ReportData):
    methodology: Dict[str, object] = field(default_factory=dict)
    samples: List[Dict] = field(default_factory=list)

    def __post_init__(self):
        self.sections = ["Executive Summary", "Detailed Analysis", "Evidence Spans", "Methodology", "Raw Data"]

    @property
    def sample_comments(self) -> List[Dict]:
        return self.samples

    def _extra(self) -> Dict:
        return {"methodology": self.methodology, "sample_comments": self.samples}


@dataclass
class TrendsReport(ReportData):
    keyword_trends: List[Dict] = field(default_factory=list)
    temporal_patterns: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        self.sections = ["Trend Analysis", "Keyword Evolution", "Temporal Patterns"]

    def _extra(self) -> Dict:
        return {"trends": {"keyword_trends": self.keyword_trends, "temporal_patterns": self.temporal_patterns}}


@dataclass
class LanguageReport(ReportData):
    language_analysis: Dict[str, Dict] = field(default_factory=dict)

    def __post_init__(self):
        self.sections = ["Language Distribution", "Cross-Language Analysis", "Translation Quality"]

    def _extra(self) -> Dict:
        return {"language_analysis": self.language_analysis}


@dataclass
class ReportRequest:
    """Parameters of an export request, as sent by the dashboard or API client."""
    type: Optional[str]
    format: Optional[str]
    date_range: Optional[str] = None
    include_charts: bool = False
    include_raw_data: bool = False


@dataclass
class RenderedReport:
    body: str
    media_type: str
    filename: str
    disposition: Optional[str] = "attachment"
    extra_headers: Dict[str, str] = field(default_factory=dict)

    @property
    def headers(self) -> Dict[str, str]:
        headers = {}
        if self.disposition:
            headers["Content-Disposition"] = f'{self.disposition}; filename="{self.filename}"'
        headers.update(self.extra_headers)
        return headers

## --- 5. Report Builders ---

def build_report(report_type: str, date_range: Optional[str], today: Optional[date] = None) -> ReportData:
    """Builds the canned report for report_type; unknown types get the shared fields only."""
    base = dict(
        report_type=report_type,
        date_range=date_range or DEFAULT_DATE_RANGE,
        generated_at=(today or date.today()).isoformat(),
        total_comments=BASE_TOTAL_COMMENTS,
        summary={name: dict(counts) for name, counts in BASE_SUMMARY.items()},
        key_findings=list(BASE_KEY_FINDINGS),
        priority_suggestions=[dict(s) for s in BASE_PRIORITY_SUGGESTIONS],
        controversial_topics=[dict(t) for t in BASE_CONTROVERSIAL_TOPICS],
    )
    if report_type == "summary":
        return SummaryReport(**base)
    if report_type == "detailed":
        return DetailedReport(
            **base,
            methodology={
                "models": ["Keyword heuristics for sentiment classification", "Truncation for summaries"],
                "accuracy": "Not evaluated (heuristic simulation)",
                "languages": "English, Hindi, Tamil, Telugu",
                "limitations": "Scores, confidences and trend figures are simulated placeholders",
            },
            samples=[
                {
                    "id": 1,
                    "text": "This new policy for small business registration is excellent. It will help entrepreneurs start their ventures more easily.",
                    "sentiment": "supportive", "emotion": "optimism",
                    "evidence_spans": ["excellent", "help entrepreneurs", "more easily"], "priority_score": 85,
                },
                {
                    "id": 2,
                    "text": "The compliance requirements are still too complex for new businesses. We need simpler processes.",
                    "sentiment": "critical", "emotion": "concern",
                    "evidence_spans": ["too complex", "need simpler processes"], "priority_score": 78,
                },
            ],
        )
    if report_type == "trends":
        return TrendsReport(
            **base,
            keyword_trends=[
                {"keyword": "digital payment", "frequency": 234, "growth": 15},
                {"keyword": "small business", "frequency": 189, "growth": 8},
                {"keyword": "compliance", "frequency": 167, "growth": -5},
            ],
            temporal_patterns={
                "peak_hours": "11:00-13:00",
                "peak_days": "Tuesday, Wednesday",
                "seasonality": "Higher activity during policy announcement periods",
            },
        )
    if report_type == "language":
        return LanguageReport(
            **base,
            language_analysis={
                "english": {"count": 8234, "avg_sentiment": 0.3, "accuracy": 88},
                "hindi": {"count": 4521, "avg_sentiment": 0.5, "accuracy": 86},
                "tamil": {"count": 1892, "avg_sentiment": 0.2, "accuracy": 82},
                "telugu": {"count": 1200, "avg_sentiment": 0.4, "accuracy": 84},
            },
        )
    return ReportData(**base)

## --- 6. Chart & Image Generation ---

def generate_base64_image(fig: plt.Figure) -> str:
    """Converts a Matplotlib figure to a Base64 encoded PNG string."""
    buf = io.BytesIO()
    fig.savefig(buf, format='png', bbox_inches='tight')
    buf.seek(0)
    img_b64 = base64.b64encode(buf.read()).decode('utf-8')
    plt.close(fig)
    return img_b64


def generate_pie_chart_b64(sentiment_counts: Dict[str, int]) -> str:
    """Generates a Base64 sentiment pie chart."""
    labels = [label.title() for label in sentiment_counts]
    sizes = list(sentiment_counts.values())
    colors = [SENTIMENT_COLORS.get(label, "#8c8c8c") for label in sentiment_counts]
    fig, ax = plt.subplots(figsize=(5, 4))
    ax.pie(
        sizes, labels=labels, colors=colors, autopct='%1.1f%%',
        startangle=90, wedgeprops={'edgecolor': 'white'},
    )
    ax.axis('equal')
    return generate_base64_image(fig)

## --- 7. Renderers ---

def _percent(count: int, total: int) -> str:
    return f"{count / total * 100:.1f}%" if total else "0.0%"


def _rows_to_csv(rows: List[List[object]]) -> str:
    stream = io.StringIO()
    csv.writer(stream, lineterminator="\n").writerows(rows)
    return stream.getvalue()


def _sample_comment_rows(report: ReportData) -> List[List[object]]:
    rows: List[List[object]] = [[], ["Sample Comments"], ["ID", "Comment", "Sentiment", "Emotion", "Evidence", "Priority Score"]]
    for sample in report.sample_comments:
        rows.append([
            sample["id"], sample["text"], sample["sentiment"], sample["emotion"],
            "; ".join(sample["evidence_spans"]), sample["priority_score"],
        ])
    return rows


def render_json(report: ReportData) -> str:
    return json.dumps(report.to_dict(), ensure_ascii=False)


def render_csv(report: ReportData, include_raw_data: bool = False) -> str:
    """Plain CSV: metadata, sentiment table, priority suggestions, controversial topics."""
    total = report.total_comments
    rows: List[List[object]] = [
        ["Report Type", report.report_type],
        ["Generated At", report.generated_at],
        ["Total Comments", total],
        ["Date Range", report.date_range],
        [],
        ["Sentiment Analysis"],
        ["Sentiment", "Count", "Percentage"],
    ]
    for sentiment, count in report.summary["sentiment_distribution"].items():
        rows.append([sentiment, count, _percent(count, total)])
    rows += [[], ["Priority Suggestions"], ["Rank", "Suggestion", "Priority Score", "Frequency", "Sentiment"]]
    for s in report.priority_suggestions:
        rows.append([s["rank"], s["text"], s["priority"], s["frequency"], s["sentiment"]])
    rows += [[], ["Controversial Topics"], ["Topic", "Supportive %", "Critical %", "Total Mentions"]]
    for t in report.controversial_topics:
        rows.append([t["topic"], t["supportive"], t["critical"], t["total_mentions"]])
    if include_raw_data and report.sample_comments:
        rows += _sample_comment_rows(report)
    return _rows_to_csv(rows)


def render_excel_csv(report: ReportData, include_raw_data: bool = False) -> str:
    """CSV laid out for spreadsheet programs: titled blocks, capitalised labels."""
    total = report.total_comments
    rows: List[List[object]] = [
        ["E-Consultation Sentiment Analysis Report"],
        ["Report Type:", report.report_type],
        ["Generated:", report.generated_at],
        ["Period:", report.date_range],
        ["Total Comments:", total],
        [],
        ["EXECUTIVE SUMMARY"],
        ["Metric", "Value", "Percentage"],
    ]
    for sentiment, count in report.summary["sentiment_distribution"].items():
        rows.append([sentiment.capitalize(), count, _percent(count, total)])
    rows += [[], ["LANGUAGE DISTRIBUTION"], ["Language", "Comments", "Percentage"]]
    for language, count in report.summary["language_distribution"].items():
        rows.append([language.capitalize(), count, _percent(count, total)])
    rows += [[], ["TOP PRIORITY RECOMMENDATIONS"], ["Priority", "Recommendation", "Score", "Mentions", "Type"]]
    for index, s in enumerate(report.priority_suggestions, start=1):
        rows.append([index, s["text"], s["priority"], s["frequency"], s["sentiment"]])
    if include_raw_data and report.sample_comments:
        rows += _sample_comment_rows(report)
    return _rows_to_csv(rows)


HTML_STYLE = """
@page { size: A4; margin: 1cm; }
@media print {
    body { -webkit-print-color-adjust: exact; color-adjust: exact; }
    .no-print { display: none !important; }
}
@media screen {
    body { background: #f5f5f5; }
    .print-container { background: white; box-shadow: 0 0 20px rgba(0,0,0,0.1); margin: 20px auto; max-width: 210mm; }
}
* { box-sizing: border-box; }
body { font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; margin: 0; padding: 20px; line-height: 1.6; color: #333; font-size: 12pt; }
.print-container { padding: 40px; min-height: 280mm; }
.header { border-bottom: 3px solid #0069FF; padding-bottom: 20px; margin-bottom: 30px; text-align: center; }
.title { color: #111318; font-size: 24pt; font-weight: bold; margin: 0; line-height: 1.2; }
.subtitle { color: #667085; font-size: 11pt; margin: 8px 0; }
.section { margin: 30px 0; page-break-inside: avoid; }
.section h2 { color: #111318; font-size: 16pt; border-bottom: 2px solid #E6EAF0; padding-bottom: 10px; margin-bottom: 20px; }
.metric-grid { display: grid; grid-template-columns: repeat(auto-fit, minmax(150px, 1fr)); gap: 15px; margin: 20px 0; }
.metric-card { border: 1px solid #E6EAF0; border-radius: 8px; padding: 15px; text-align: center; }
.metric-value { font-size: 24pt; font-weight: bold; color: #0069FF; margin-bottom: 5px; }
.metric-label { font-size: 9pt; color: #667085; }
.recommendation { background: #F8F9FC; border-left: 4px solid #0069FF; padding: 15px; margin: 15px 0; }
.recommendation h4 { margin: 0 0 10px 0; color: #111318; font-size: 12pt; }
.priority-score { background: #0069FF; color: white; padding: 2px 6px; border-radius: 4px; font-size: 9pt; font-weight: bold; }
.controversial-topic { background: #FFF3CD; border-left: 4px solid #F59E0B; padding: 15px; margin: 15px 0; }
.progress-bar { background: #E6EAF0; height: 8px; border-radius: 4px; overflow: hidden; margin: 10px 0; }
.progress-fill { background: #0069FF; height: 100%; }
.key-finding { background: #E8F4FD; border-radius: 6px; padding: 12px; margin: 10px 0; }
.chart { text-align: center; margin: 20px 0; }
table { width: 100%; border-collapse: collapse; margin: 20px 0; font-size: 10pt; }
th, td { border: 1px solid #E6EAF0; padding: 8px; text-align: left; }
th { background: #F8F9FC; font-weight: bold; }
.footer { margin-top: 60px; padding-top: 20px; border-top: 1px solid #E6EAF0; font-size: 9pt; color: #667085; text-align: center; }
.print-controls { position: fixed; top: 20px; right: 20px; background: white; padding: 15px; border-radius: 8px; box-shadow: 0 4px 12px rgba(0,0,0,0.15); }
.print-button { background: #0069FF; color: white; border: none; padding: 12px 24px; border-radius: 6px; font-weight: bold; cursor: pointer; margin: 5px; }
"""


def render_html(report: ReportData, include_charts: bool = False) -> str:
    """Print-optimised HTML document; the browser's print dialog produces the PDF."""
    esc = html.escape
    total = report.total_comments
    sentiments = report.summary["sentiment_distribution"]
    languages = report.summary["language_distribution"]

    def share(count: int) -> int:
        return round(count / total * 100) if total else 0

    parts = [
        "<!DOCTYPE html>",
        "<html>",
        "<head>",
        "<title>E-Consultation Sentiment Analysis Report</title>",
        f"<style>{HTML_STYLE}</style>",
        "</head>",
        "<body>",
        '<div class="print-controls no-print">'
        '<button class="print-button" onclick="window.print()">Print Report</button>'
        '<button class="print-button" onclick="window.close()">Close</button></div>',
        '<div class="print-container">',
        '<div class="header">',
        '<h1 class="title">E-Consultation Sentiment Analysis Report</h1>',
        '<p class="subtitle">Ministry of Corporate Affairs</p>',
        f'<p class="subtitle">Report Type: {esc(report.title)} &bull; Generated: {esc(report.generated_at)} &bull; Period: {esc(str(report.date_range))}</p>',
        "</div>",
        '<div class="section"><h2>Executive Summary</h2>',
        "<p>This report analyzes citizen feedback from the E-consultation module, providing insights into public sentiment regarding corporate affairs policies and regulations.</p>",
        '<div class="metric-grid">',
        f'<div class="metric-card"><div class="metric-value">{total:,}</div><div class="metric-label">Total Comments Analyzed</div></div>',
        f'<div class="metric-card"><div class="metric-value">{share(sentiments["supportive"])}%</div><div class="metric-label">Supportive Sentiment</div></div>',
        f'<div class="metric-card"><div class="metric-value">{share(sentiments["critical"])}%</div><div class="metric-label">Critical Feedback</div></div>',
        f'<div class="metric-card"><div class="metric-value">{len(languages)}</div><div class="metric-label">Languages Detected</div></div>',
        "</div></div>",
        '<div class="section"><h2>Key Findings</h2>',
    ]
    parts += [f'<div class="key-finding">&bull; {esc(finding)}</div>' for finding in report.key_findings]
    parts.append("</div>")

    if include_charts:
        chart_b64 = generate_pie_chart_b64(sentiments)
        parts += [
            '<div class="section"><h2>Sentiment Distribution</h2>',
            f'<div class="chart"><img alt="Sentiment distribution" src="data:image/png;base64,{chart_b64}"></div>',
            "</div>",
        ]

    parts += [
        '<div class="section"><h2>Priority Recommendations</h2>',
        "<p>Based on sentiment analysis and frequency of mentions, the following recommendations have been identified as high priority for policy consideration:</p>",
    ]
    for index, rec in enumerate(report.priority_suggestions, start=1):
        parts.append(
            f'<div class="recommendation"><h4>{index}. {esc(rec["text"])} '
            f'<span class="priority-score">Priority: {rec["priority"]}</span></h4>'
            f'<p><strong>Mentioned:</strong> {rec["frequency"]} times &bull; <strong>Sentiment:</strong> {esc(rec["sentiment"])}</p></div>'
        )
    parts.append("</div>")

    parts += [
        '<div class="section"><h2>Controversial Topics</h2>',
        "<p>Topics with mixed public opinion that require careful consideration:</p>",
    ]
    for topic in report.controversial_topics:
        parts.append(
            f'<div class="controversial-topic"><h4>{esc(topic["topic"])}</h4>'
            f'<p><strong>Total Mentions:</strong> {topic["total_mentions"]}</p>'
            f'<div class="progress-bar"><div class="progress-fill" style="width: {topic["supportive"]}%"></div></div>'
            f'<p>{topic["supportive"]}% supportive, {topic["critical"]}% critical</p></div>'
        )
    parts.append("</div>")

    parts += [
        '<div class="section"><h2>Language Analysis</h2>',
        "<table><thead><tr><th>Language</th><th>Comments</th><th>Percentage</th></tr></thead><tbody>",
    ]
    for language, count in languages.items():
        parts.append(f"<tr><td>{esc(language.capitalize())}</td><td>{count:,}</td><td>{share(count)}%</td></tr>")
    parts.append("</tbody></table></div>")

    if isinstance(report, DetailedReport):
        m = report.methodology
        parts += [
            '<div class="section"><h2>Methodology</h2>',
            f'<p><strong>Models Used:</strong> {esc(", ".join(m["models"]))}</p>',
            f'<p><strong>Overall Accuracy:</strong> {esc(m["accuracy"])}</p>',
            f'<p><strong>Languages Supported:</strong> {esc(m["languages"])}</p>',
            f'<p><strong>Limitations:</strong> {esc(m["limitations"])}</p>',
            "</div>",
        ]

    parts += [
        '<div class="footer">',
        "<p>This report was generated by the E-Consultation Sentiment Analyzer.</p>",
        "<p>Figures in this report are illustrative and are not derived from uploaded comments.</p>",
        "</div>",
        "</div>",
        "</body>",
        "</html>",
    ]
    return "\n".join(parts)


def render_report(request: ReportRequest, today: Optional[date] = None) -> RenderedReport:
    """Validates an export request and renders the report in the requested format."""
    if not request.type or not request.format:
        raise ReportRequestError("Missing required parameters: type and format")
    if request.format not in SUPPORTED_FORMATS:
        raise ReportFormatError("Unsupported format")

    report = build_report(request.type, request.date_range, today=today)
    stem = f"sentiment-analysis-{report.report_type}-{report.date_range}"

    if request.format == "json":
        return RenderedReport(render_json(report), "application/json", f"{stem}.json", disposition=None)
    if request.format == "csv":
        return RenderedReport(render_csv(report, request.include_raw_data), "text/csv", f"{stem}.csv")
    if request.format == "xlsx":
        return RenderedReport(render_excel_csv(report, request.include_raw_data), XLSX_MEDIA_TYPE, f"{stem}.xlsx")
    return RenderedReport(
        render_html(report, request.include_charts), "text/html", f"{stem}.html",
        disposition="inline", extra_headers={"X-PDF-Conversion": "true"},
    )

## --- 8. Comment Export ---

EXPORT_COLUMNS = [
    "id", "text", "timestamp", "language", "user_id", "sentiment", "emotion",
    "summary", "evidence_spans", "priority_score", "confidence",
]


def comments_to_dataframe(comments: List[Dict]) -> pd.DataFrame:
    """One row per classified comment; evidence spans joined with '; '."""
    df = pd.DataFrame(comments, columns=EXPORT_COLUMNS)
    if not df.empty:
        df["evidence_spans"] = df["evidence_spans"].apply("; ".join)
    return df


def comments_to_csv(comments: List[Dict]) -> str:
    return comments_to_dataframe(comments).to_csv(index=False)
