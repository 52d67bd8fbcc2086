"""
Tests for report building, rendering and the classified-comment export.
"""

import json
from datetime import date

import pytest

from reports import (
    BASE_PRIORITY_SUGGESTIONS,
    DetailedReport,
    LanguageReport,
    ReportData,
    ReportFormatError,
    ReportRequest,
    ReportRequestError,
    SummaryReport,
    TrendsReport,
    build_report,
    comments_to_csv,
    render_csv,
    render_excel_csv,
    render_html,
    render_report,
)

TODAY = date(2024, 3, 1)


@pytest.mark.parametrize("report_type,cls", [
    ("summary", SummaryReport),
    ("detailed", DetailedReport),
    ("trends", TrendsReport),
    ("language", LanguageReport),
])
def test_build_report_picks_variant(report_type, cls):
    report = build_report(report_type, "30d", today=TODAY)

    assert type(report) is cls
    assert report.generated_at == "2024-03-01"
    assert report.total_comments == 15847
    assert report.sections


def test_unknown_report_type_has_shared_fields_only():
    report = build_report("quarterly", "30d", today=TODAY)
    data = report.to_dict()

    assert type(report) is ReportData
    assert "sections" not in data
    assert data["metadata"]["reportType"] == "quarterly"
    assert data["keyFindings"]


def test_build_report_copies_base_data():
    report = build_report("summary", "7d", today=TODAY)
    report.priority_suggestions[0]["text"] = "changed"

    assert BASE_PRIORITY_SUGGESTIONS[0]["text"] != "changed"


def test_to_dict_uses_camel_case_keys():
    data = build_report("trends", "90d", today=TODAY).to_dict()

    assert data["metadata"] == {
        "reportType": "trends",
        "dateRange": "90d",
        "generatedAt": "2024-03-01",
        "totalComments": 15847,
        "analysisVersion": "1.0.0",
    }
    assert data["summary"]["sentimentDistribution"]["supportive"] == 6234
    assert data["controversialTopics"][0]["totalMentions"] == 456
    assert data["trends"]["temporalPatterns"]["peakHours"] == "11:00-13:00"
    assert data["trends"]["keywordTrends"][0]["keyword"] == "digital payment"


def test_language_report_extra_section():
    data = build_report("language", "30d", today=TODAY).to_dict()

    assert data["languageAnalysis"]["hindi"]["avgSentiment"] == 0.5
    assert data["sections"][0] == "Language Distribution"


def test_render_csv_lines():
    text = render_csv(build_report("summary", "30d", today=TODAY))
    lines = text.splitlines()

    assert lines[:4] == ["Report Type,summary", "Generated At,2024-03-01", "Total Comments,15847", "Date Range,30d"]
    assert "Sentiment,Count,Percentage" in lines
    assert "supportive,6234,39.3%" in lines
    assert "critical,4521,28.5%" in lines
    assert "1,Implement digital payment systems for small business registration,95,234,supportive" in lines
    assert "Tax rates for small businesses,45,55,456" in lines
    assert "Sample Comments" not in lines


def test_render_csv_raw_data_only_for_detailed():
    detailed = render_csv(build_report("detailed", "30d", today=TODAY), include_raw_data=True).splitlines()
    summary = render_csv(build_report("summary", "30d", today=TODAY), include_raw_data=True).splitlines()

    assert "Sample Comments" in detailed
    assert any(line.endswith("too complex; need simpler processes,78") for line in detailed)
    assert "Sample Comments" not in summary


def test_render_excel_csv_lines():
    lines = render_excel_csv(build_report("summary", "30d", today=TODAY)).splitlines()

    assert lines[0] == "E-Consultation Sentiment Analysis Report"
    assert "Report Type:,summary" in lines
    assert "Supportive,6234,39.3%" in lines
    assert "English,8234,52.0%" in lines
    assert "Telugu,1200,7.6%" in lines
    assert "3,Provide multilingual support for all government forms,88,167,critical" in lines


def test_render_html_basics():
    page = render_html(build_report("summary", "30d", today=TODAY))

    assert page.startswith("<!DOCTYPE html>")
    assert "Report Type: Executive Summary" in page
    assert "15,847" in page
    assert '<div class="metric-value">39%</div>' in page
    assert "Tax rates for small businesses" in page
    assert "data:image/png;base64," not in page
    assert "Methodology" not in page


def test_render_html_with_chart_and_methodology():
    page = render_html(build_report("detailed", "30d", today=TODAY), include_charts=True)

    assert "data:image/png;base64," in page
    assert "<h2>Methodology</h2>" in page


def test_render_report_validation():
    with pytest.raises(ReportRequestError):
        render_report(ReportRequest(type=None, format="json"))
    with pytest.raises(ReportRequestError):
        render_report(ReportRequest(type="summary", format=""))
    with pytest.raises(ReportFormatError):
        render_report(ReportRequest(type="summary", format="docx"))


def test_render_report_json():
    rendered = render_report(ReportRequest(type="summary", format="json", date_range="30d"), today=TODAY)

    assert rendered.media_type == "application/json"
    assert "Content-Disposition" not in rendered.headers
    assert json.loads(rendered.body)["metadata"]["generatedAt"] == "2024-03-01"


def test_render_report_pdf_headers():
    rendered = render_report(ReportRequest(type="language", format="pdf", date_range="7d"), today=TODAY)

    assert rendered.media_type == "text/html"
    assert rendered.headers == {
        "Content-Disposition": 'inline; filename="sentiment-analysis-language-7d.html"',
        "X-PDF-Conversion": "true",
    }


def test_render_report_defaults_missing_date_range():
    rendered = render_report(ReportRequest(type="summary", format="csv"), today=TODAY)

    assert rendered.filename == "sentiment-analysis-summary-30d.csv"
    assert "Date Range,30d" in rendered.body.splitlines()
    assert build_report("trends", None, today=TODAY).to_dict()["metadata"]["dateRange"] == "30d"


def _all_keys(value):
    if isinstance(value, dict):
        for key, item in value.items():
            yield key
            yield from _all_keys(item)
    elif isinstance(value, list):
        for item in value:
            yield from _all_keys(item)


@pytest.mark.parametrize("report_type", ["summary", "detailed", "trends", "language", "quarterly"])
def test_nested_report_keys_are_camel_case(report_type):
    data = build_report(report_type, "30d", today=TODAY).to_dict()

    assert all("_" not in key for key in _all_keys(data))


def test_detailed_sample_comment_keys():
    sample = build_report("detailed", "30d", today=TODAY).to_dict()["sampleComments"][0]

    assert sample["priorityScore"] == 85
    assert sample["evidenceSpans"] == ["excellent", "help entrepreneurs", "more easily"]


def test_comments_to_csv():
    comments = [{
        "id": "1", "text": "Good, really", "timestamp": "2024-01-15T10:30:00Z", "language": "en",
        "user_id": None, "sentiment": "supportive", "emotion": "optimism", "summary": "Good, really",
        "evidence_spans": ["good", "support"], "priority_score": 77, "confidence": 0.81,
    }]

    lines = comments_to_csv(comments).splitlines()

    assert lines[0] == "id,text,timestamp,language,user_id,sentiment,emotion,summary,evidence_spans,priority_score,confidence"
    assert lines[1] == '1,"Good, really",2024-01-15T10:30:00Z,en,,supportive,optimism,"Good, really",good; support,77,0.81'


def test_comments_to_csv_empty():
    assert comments_to_csv([]).strip() == "id,text,timestamp,language,user_id,sentiment,emotion,summary,evidence_spans,priority_score,confidence"


# Run tests if executed directly
if __name__ == "__main__":
    pytest.main([__file__, "-v"])
