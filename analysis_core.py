# ===========================
# Comment Analysis Core - CSV ingestion, heuristic classification, aggregation
# ===========================
#
# Used by the FastAPI backend (main.py) and the Streamlit dashboard
# (admin_dashboard.py). Everything here is synchronous and stateless: one
# call to run_analysis() parses, classifies and aggregates a whole upload.
#
# NOTE: the "AI" here is keyword matching plus randomized placeholder
# numbers. Every randomized output is listed in SIMULATED_FIELDS and is
# returned to API callers so it can be labelled as simulated.
#
# ===========================

## --- 1. Imports ---

# --- Standard Library ---
import logging
import math
from collections import Counter
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence

# --- Third-Party Libraries ---
import numpy as np
import pandas as pd

import settings

logger = logging.getLogger(__name__)

## --- 2. Constants & Keyword Tables ---

SENTIMENTS = ("supportive", "critical", "suggestion", "irrelevant")
EMOTIONS = ("optimism", "concern", "trust", "anger")
REQUIRED_COLUMNS = ("comment_id", "comment_text", "timestamp", "language")
MIN_FIELDS_PER_ROW = 4

# (sentiment, emotion, priority bonus, trigger keywords) - first match wins
SENTIMENT_RULES = (
    ("supportive", "optimism", 20, ("good", "excellent", "support", "agree", "positive", "helpful")),
    ("critical", "anger", 15, ("bad", "terrible", "against", "disagree", "negative", "problem")),
    ("suggestion", "concern", 25, ("suggest", "recommend", "should", "could", "improve", "better")),
)

# Hindi overrides, no priority bonus
HINDI_RULES = (
    ("supportive", "optimism", ("अच्छा", "बेहतर", "समर्थन")),
    ("critical", "anger", ("बुरा", "समस्या", "गलत")),
)

EVIDENCE_KEYWORDS = {
    "supportive": ["good", "excellent", "support", "agree", "positive", "helpful", "great", "amazing"],
    "critical": ["bad", "terrible", "against", "disagree", "negative", "problem", "issue", "wrong"],
    "suggestion": ["suggest", "recommend", "should", "could", "improve", "better", "enhance", "modify"],
}

STOP_WORDS = frozenset([
    "the", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with", "by",
    "is", "are", "was", "were", "be", "been", "have", "has", "had", "do", "does",
    "did", "will", "would", "could", "should", "may", "might", "must", "can",
    "this", "that", "these", "those",
])

LANGUAGE_NAMES = {
    "en": "English", "hi": "Hindi", "ta": "Tamil", "te": "Telugu", "bn": "Bengali",
    "mr": "Marathi", "gu": "Gujarati", "kn": "Kannada", "ml": "Malayalam", "pa": "Punjabi",
}

SENTIMENT_WEIGHTS = {"supportive": 1.0, "suggestion": 0.5, "critical": -0.5, "irrelevant": 0.0}

CORRELATION_TOPICS = [
    "Digital Services", "Tax Policy", "Compliance", "Registration Process",
    "Documentation", "Multilingual Support", "Startup Policies", "Business Licensing",
]
RADAR_EMOTIONS = ["Optimism", "Trust", "Concern", "Anger", "Fear", "Joy"]

# Fixed recommendations; only "frequency" varies, drawn from [low, high)
PRIORITY_SUGGESTIONS = [
    {
        "id": 1,
        "text": "Implement digital payment systems for small business registration",
        "priority": 95, "frequency_range": (150, 250), "sentiment": "supportive",
        "evidence": ["digital payment", "small business", "registration", "easier process"],
    },
    {
        "id": 2,
        "text": "Reduce compliance burden for startups in first year",
        "priority": 92, "frequency_range": (120, 200), "sentiment": "suggestion",
        "evidence": ["compliance burden", "startups", "first year", "reduce paperwork"],
    },
    {
        "id": 3,
        "text": "Provide multilingual support for all government forms",
        "priority": 88, "frequency_range": (100, 170), "sentiment": "critical",
        "evidence": ["multilingual", "government forms", "language barrier", "accessibility"],
    },
]

CONTROVERSIAL_TOPICS = [
    {"topic": "Tax rates for small businesses", "supportive": 45, "critical": 55, "mentions_range": (300, 500)},
    {"topic": "Digital documentation requirements", "supportive": 62, "critical": 38, "mentions_range": (200, 350)},
    {"topic": "Compliance timeline for new businesses", "supportive": 38, "critical": 62, "mentions_range": (150, 250)},
]

# Response paths (wire names) whose values are generated, not derived from the upload
SIMULATED_FIELDS = [
    "comments[].priorityScore",
    "comments[].confidence",
    "summary.trendsOverTime",
    "analytics.keywordTrends[].sentiment",
    "analytics.keywordTrends[].growth",
    "analytics.temporalPatterns",
    "analytics.sentimentCorrelation",
    "analytics.emotionRadar",
    "prioritySuggestions",
    "controversialTopics",
]

## --- 3. Errors ---

class AnalysisError(Exception):
    """Base class for errors reported back to the caller as HTTP 4xx."""
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MissingFileError(AnalysisError):
    def __init__(self, message: str = "No file provided"):
        super().__init__(message)


class CSVValidationError(AnalysisError):
    """Upload is not a usable comments CSV (too few lines, bad header, no rows)."""

## --- 4. Data Models ---

@dataclass
class CommentRecord:
    """One parsed data row of the uploaded CSV."""
    id: str
    text: str
    timestamp: str  # ISO-8601-like, as supplied
    language: str  # two-letter code, "en" by default
    user_id: Optional[str] = None


@dataclass
class Classification:
    """Output of the heuristic classifier for a single comment."""
    sentiment: str
    emotion: str
    summary: str
    evidence_spans: List[str] = field(default_factory=list)
    priority_score: int = 0
    confidence: float = 0.0


@dataclass
class ClassifiedComment:
    """A CommentRecord merged with its Classification."""
    id: str
    text: str
    timestamp: str
    language: str
    user_id: Optional[str]
    sentiment: str
    emotion: str
    summary: str
    evidence_spans: List[str]
    priority_score: int
    confidence: float

    @classmethod
    def from_parts(cls, record: CommentRecord, classification: Classification) -> "ClassifiedComment":
        return cls(**asdict(record), **asdict(classification))

    def to_dict(self) -> dict:
        return asdict(self)

## --- 5. CSV Parsing ---

def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def decode_upload(contents: bytes) -> str:
    """Decodes uploaded bytes as UTF-8, falling back to CP1252 (e.g. '0x92' quotes)."""
    try:
        return contents.decode("utf-8")
    except UnicodeDecodeError:
        return contents.decode("cp1252")


def split_csv_line(line: str) -> List[str]:
    """
    Splits one data line on commas that are outside double quotes.

    A '"' only toggles the quoted state and is never emitted; doubled quotes
    ("") are not treated as an escape.
    """
    fields: List[str] = []
    current: List[str] = []
    in_quotes = False
    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            fields.append("".join(current))
            current = []
        else:
            current.append(char)
    fields.append("".join(current))
    return fields


def parse_header(line: str) -> List[str]:
    """Naive header split: no quote handling, cells trimmed, unquoted and lower-cased."""
    return [cell.strip().replace('"', "").lower() for cell in line.split(",")]


def has_required_columns(headers: Sequence[str]) -> bool:
    """Every required column name must be a substring of at least one header cell."""
    return all(any(required in header for header in headers) for required in REQUIRED_COLUMNS)


def parse_comments_csv(text: str) -> List[CommentRecord]:
    """
    Parses the full text of an uploaded comments CSV into CommentRecords.

    Columns are positional: id, text, timestamp, language and an optional
    user id. Lines that split into fewer than four fields are dropped
    without an error.
    """
    lines = [line.rstrip("\r") for line in text.split("\n")]
    lines = [line for line in lines if line.strip()]
    if len(lines) < 2:
        raise CSVValidationError("CSV file must contain headers and at least one data row")

    if not has_required_columns(parse_header(lines[0])):
        raise CSVValidationError("CSV must contain columns: " + ", ".join(REQUIRED_COLUMNS))

    records: List[CommentRecord] = []
    skipped = 0
    for row_index, line in enumerate(lines[1:], start=1):
        values = split_csv_line(line)
        if len(values) < MIN_FIELDS_PER_ROW:
            skipped += 1
            continue
        records.append(CommentRecord(
            id=values[0] or str(row_index),
            text=values[1] or "",
            timestamp=values[2] or utc_now_iso(),
            language=values[3] or "en",
            user_id=(values[4] or None) if len(values) > 4 else None,
        ))

    if skipped:
        logger.debug(f"Skipped {skipped} CSV lines with fewer than {MIN_FIELDS_PER_ROW} fields")
    if not records:
        raise CSVValidationError("No valid comments found in CSV")
    return records

## --- 6. Heuristic Classification ---

def make_rng(seed: Optional[int] = None) -> np.random.Generator:
    """Creates the per-request random source; falls back to settings.RANDOM_SEED."""
    return np.random.default_rng(settings.RANDOM_SEED if seed is None else seed)


def summarize_text(text: str, max_chars: int = settings.SUMMARY_MAX_CHARS) -> str:
    """First max_chars characters plus an ellipsis, or the text unchanged if short enough."""
    return text[:max_chars] + "..." if len(text) > max_chars else text


def extract_evidence_spans(text: str, sentiment: str) -> List[str]:
    """Keywords of the given sentiment's evidence list found in the text, in list order."""
    lower_text = text.lower()
    spans = [kw for kw in EVIDENCE_KEYWORDS.get(sentiment, []) if kw in lower_text]
    return spans[:settings.MAX_EVIDENCE_SPANS]


def analyze_comment(text: str, language: str, rng: Optional[np.random.Generator] = None) -> Classification:
    """
    Classifies one comment by keyword containment.

    Sentiment and emotion depend only on (text, language). The priority score
    gets random jitter and the confidence is random, both drawn from rng.
    """
    rng = rng if rng is not None else make_rng()
    lower_text = text.lower()

    sentiment, emotion = "irrelevant", "concern"
    priority_score = int(rng.integers(30, 71))
    for rule_sentiment, rule_emotion, bonus, keywords in SENTIMENT_RULES:
        if any(kw in lower_text for kw in keywords):
            sentiment, emotion = rule_sentiment, rule_emotion
            priority_score += bonus
            break

    if language == "hi":
        for rule_sentiment, rule_emotion, keywords in HINDI_RULES:
            if any(kw in lower_text for kw in keywords):
                sentiment, emotion = rule_sentiment, rule_emotion
                break

    return Classification(
        sentiment=sentiment,
        emotion=emotion,
        summary=summarize_text(text),
        evidence_spans=extract_evidence_spans(text, sentiment),
        priority_score=min(priority_score, 100),
        confidence=float(rng.uniform(0.7, 1.0)),
    )


def classify_comments(records: List[CommentRecord], rng: Optional[np.random.Generator] = None) -> List[ClassifiedComment]:
    """Classifies every record, preserving input order."""
    rng = rng if rng is not None else make_rng()
    return [
        ClassifiedComment.from_parts(record, analyze_comment(record.text, record.language, rng))
        for record in records
    ]

## --- 7. Aggregation ---

def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def build_summary(comments: List[ClassifiedComment], rng: np.random.Generator) -> Dict:
    """Exact category counts plus a simulated trend for the last TREND_DAYS days."""
    sentiment_counts = dict.fromkeys(SENTIMENTS, 0)
    emotion_counts = dict.fromkeys(EMOTIONS, 0)
    language_counts: Dict[str, int] = {}
    for comment in comments:
        sentiment_counts[comment.sentiment] += 1
        emotion_counts[comment.emotion] += 1
        language_counts[comment.language] = language_counts.get(comment.language, 0) + 1

    today = datetime.now(timezone.utc).date()
    trends_over_time = []
    for days_back in range(settings.TREND_DAYS - 1, -1, -1):
        trends_over_time.append({
            "date": (today - timedelta(days=days_back)).isoformat(),
            "supportive": int(rng.integers(50, 150)),
            "critical": int(rng.integers(30, 110)),
            "suggestion": int(rng.integers(40, 130)),
            "irrelevant": int(rng.integers(10, 40)),
        })

    return {
        "total_comments": len(comments),
        "sentiment_distribution": sentiment_counts,
        "emotion_distribution": emotion_counts,
        "language_distribution": language_counts,
        "trends_over_time": trends_over_time,
    }


def count_keywords(texts: Sequence[str]) -> Counter:
    """Whitespace tokens longer than 3 characters that are not stop words."""
    keyword_freq: Counter = Counter()
    for text in texts:
        keyword_freq.update(
            word for word in text.lower().split()
            if len(word) > 3 and word not in STOP_WORDS
        )
    return keyword_freq


def build_keyword_trends(comments: List[ClassifiedComment], rng: np.random.Generator) -> List[Dict]:
    keyword_freq = count_keywords([c.text for c in comments])
    return [
        {
            "keyword": keyword,
            "frequency": frequency,
            "sentiment": float(rng.uniform(-1, 1)),
            "growth": float(rng.uniform(-20, 20)),
        }
        for keyword, frequency in keyword_freq.most_common(settings.TOP_KEYWORDS)
    ]


def language_name(code: str) -> str:
    return LANGUAGE_NAMES.get(code, code.upper())


def calculate_avg_sentiment(sentiments: Dict[str, int]) -> float:
    """Weighted mean: supportive 1, suggestion 0.5, critical -0.5, irrelevant 0."""
    total = sum(sentiments.values())
    if total == 0: return 0.0
    weighted = sum(SENTIMENT_WEIGHTS[name] * count for name, count in sentiments.items())
    return weighted / total


def build_language_analysis(comments: List[ClassifiedComment]) -> List[Dict]:
    """Per-language counts and sentiment proportions, in first-seen language order."""
    languages: Dict[str, Dict] = {}
    for comment in comments:
        entry = languages.setdefault(comment.language, {
            "language": language_name(comment.language),
            "count": 0,
            "sentiments": dict.fromkeys(SENTIMENTS, 0),
        })
        entry["count"] += 1
        entry["sentiments"][comment.sentiment] += 1

    analysis = []
    for entry in languages.values():
        count = entry["count"]
        row = dict(entry, avg_sentiment=calculate_avg_sentiment(entry["sentiments"]))
        for sentiment in SENTIMENTS:
            row[sentiment] = _round_half_up(entry["sentiments"][sentiment] / count * 100)
        analysis.append(row)
    return analysis


def build_temporal_patterns(comments: List[ClassifiedComment], rng: np.random.Generator) -> List[Dict]:
    """Real hour-of-day counts from parseable timestamps, padded with simulated traffic."""
    hourly = [{"hour": hour, "comments": 0, "avg_sentiment": 0.0} for hour in range(24)]

    if comments:
        times = pd.to_datetime(pd.Series([c.timestamp for c in comments]), errors="coerce", utc=True, format="mixed")
        for hour in times.dropna().dt.hour:
            hourly[int(hour)]["comments"] += 1

    for data in hourly:
        if 9 <= data["hour"] <= 17:
            data["comments"] += int(rng.integers(20, 70))  # business hours
        else:
            data["comments"] += int(rng.integers(5, 25))
        data["avg_sentiment"] = float(rng.uniform(-0.3, 0.3))
    return hourly


def build_sentiment_correlation(rng: np.random.Generator) -> List[Dict]:
    return [
        {"topic": topic, "sentiment": float(rng.uniform(-1, 1)), "volume": int(rng.integers(50, 250))}
        for topic in CORRELATION_TOPICS
    ]


def build_emotion_radar(rng: np.random.Generator) -> List[Dict]:
    return [
        {"emotion": emotion, "value": int(rng.integers(40, 80)), "full_mark": 100}
        for emotion in RADAR_EMOTIONS
    ]


def build_analytics(comments: List[ClassifiedComment], rng: np.random.Generator) -> Dict:
    return {
        "keyword_trends": build_keyword_trends(comments, rng),
        "language_analysis": build_language_analysis(comments),
        "temporal_patterns": build_temporal_patterns(comments, rng),
        "sentiment_correlation": build_sentiment_correlation(rng),
        "emotion_radar": build_emotion_radar(rng),
    }


def build_priority_suggestions(comments: List[ClassifiedComment], rng: np.random.Generator) -> List[Dict]:
    """The fixed top-3 recommendations; independent of the uploaded comments."""
    suggestions = []
    for template in PRIORITY_SUGGESTIONS:
        low, high = template["frequency_range"]
        suggestion = {k: v for k, v in template.items() if k != "frequency_range"}
        suggestion["evidence"] = list(template["evidence"])
        suggestion["frequency"] = int(rng.integers(low, high))
        suggestions.append(suggestion)
    return suggestions


def build_controversial_topics(comments: List[ClassifiedComment], rng: np.random.Generator) -> List[Dict]:
    """The fixed controversial topics; independent of the uploaded comments."""
    topics = []
    for template in CONTROVERSIAL_TOPICS:
        low, high = template["mentions_range"]
        topics.append({
            "topic": template["topic"],
            "supportive": template["supportive"],
            "critical": template["critical"],
            "total_mentions": int(rng.integers(low, high)),
        })
    return topics

## --- 8. Pipeline ---

def run_analysis(text: str, rng: Optional[np.random.Generator] = None) -> Dict:
    """
    Parses, classifies and aggregates an uploaded CSV in one synchronous pass.

    Raises CSVValidationError for unusable input; any other exception is an
    internal error for the caller to report.
    """
    rng = rng if rng is not None else make_rng()
    records = parse_comments_csv(text)
    comments = classify_comments(records, rng)
    logger.info(f"Classified {len(comments)} comments")

    return {
        "success": True,
        "total_comments": len(comments),
        "processed_at": utc_now_iso(),
        "summary": build_summary(comments, rng),
        "comments": [c.to_dict() for c in comments],
        "analytics": build_analytics(comments, rng),
        "priority_suggestions": build_priority_suggestions(comments, rng),
        "controversial_topics": build_controversial_topics(comments, rng),
        "simulated_fields": list(SIMULATED_FIELDS),
    }
