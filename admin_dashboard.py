# admin_dashboard.py (Streamlit front end for the comment analysis core)
#
# Run with:
#    streamlit run admin_dashboard.py
#
# Analysis runs in-process through analysis_core.run_analysis; report
# downloads use reports.render_report, the same code behind the API.

from pathlib import Path
from typing import Dict, List, Optional, Tuple

import matplotlib.pyplot as plt
import pandas as pd
import plotly.express as px
import streamlit as st
from wordcloud import STOPWORDS, WordCloud

from analysis_core import (
    SENTIMENTS, STOP_WORDS, AnalysisError, decode_upload, run_analysis,
)
from reports import (
    REPORT_TYPE_NAMES, ReportFormatError, ReportRequest, ReportRequestError,
    comments_to_dataframe, render_report,
)

# Suppress Matplotlib warnings/backend issues in Streamlit
plt.rcParams.update({'figure.max_open_warning': 0})

# --- 1. GLOBAL CONFIGURATION ---

# Define MCA Color Palette
MCA_COLORS = {
    "MCA_BLUE_DARK": "#1b3a6d",       # Header/Primary Bar
    "MCA_BLUE_LIGHT": "#48a6a6",      # Accent Blue, Hover Color
    "MCA_RED": "#c53030",             # Critical
    "MCA_GREEN": "#27ae60",           # Supportive
    "MCA_GRAY_BG": "#f7f7f7",         # App background
    "MCA_LIGHT_BLUE_BG": "#e6f0fa",   # Section background
    "MCA_ORANGE_DARK": "#ff9933",     # Suggestion
    "NEUTRAL_GRAY": "#8c8c8c",        # Irrelevant
}

SENTIMENT_COLORS = {
    "supportive": MCA_COLORS["MCA_GREEN"],
    "critical": MCA_COLORS["MCA_RED"],
    "suggestion": MCA_COLORS["MCA_ORANGE_DARK"],
    "irrelevant": MCA_COLORS["NEUTRAL_GRAY"],
}

DATE_RANGES = {"7d": "Last 7 days", "30d": "Last 30 days", "90d": "Last 90 days", "1y": "Last year", "all": "All time"}
EXPORT_FORMATS = {"pdf": "PDF (print-ready HTML)", "xlsx": "Excel Spreadsheet", "csv": "CSV Data", "json": "JSON Data"}

WORDCLOUD_STOPWORDS = set(STOPWORDS) | set(STOP_WORDS)

# --- 2. ANALYSIS HELPERS ---

@st.cache_data(show_spinner="Running comment analysis...")
def analyze_file(file_bytes: bytes) -> Tuple[Optional[Dict], Optional[str]]:
    """Runs the analysis pipeline; returns (result, error message)."""
    try:
        return run_analysis(decode_upload(file_bytes)), None
    except AnalysisError as e:
        return None, e.message


def counts_frame(counts: Dict[str, int], label: str) -> pd.DataFrame:
    df = pd.DataFrame(list(counts.items()), columns=[label, 'Count'])
    return df[df['Count'] > 0]


@st.cache_data(max_entries=10)
def comment_wordcloud(comment_texts: Tuple[str, ...], background: str) -> Optional[WordCloud]:
    """Word cloud over all comment texts; None when no word survives the stop lists."""
    joined = " ".join(comment_texts)
    if not joined.strip():
        return None
    cloud = WordCloud(
        width=600, height=320, background_color=background, colormap='winter_r',
        max_words=100, collocations=False, stopwords=WORDCLOUD_STOPWORDS,
    )
    try:
        return cloud.generate(joined)
    except ValueError:  # nothing left after stop-word filtering
        return None


def show_wordcloud(cloud: Optional[WordCloud]):
    if cloud is None:
        st.info("Not enough comment text for a word cloud.")
        return
    fig, ax = plt.subplots(figsize=(6, 3.2))
    ax.imshow(cloud, interpolation="bilinear")
    ax.set_axis_off()
    st.pyplot(fig)
    plt.close(fig)


def plot_keyword_bar_chart(keyword_trends: List[Dict]):
    """Horizontal bar chart of keyword frequency, coloured by simulated keyword sentiment."""
    if not keyword_trends:
        st.info("No keywords longer than three letters outside the stop list.")
        return

    df_keywords = pd.DataFrame(keyword_trends).iloc[::-1]
    fig = px.bar(
        df_keywords, x='frequency', y='keyword', orientation='h',
        title=f'Top {len(df_keywords)} Keywords', color='sentiment',
        color_continuous_scale=px.colors.diverging.RdYlGn, range_color=[-1, 1],
        hover_data={'growth': ':.1f'},
    )
    fig.update_layout(
        xaxis_title="Mentions", yaxis_title=None,
        plot_bgcolor="white", paper_bgcolor=MCA_COLORS["MCA_LIGHT_BLUE_BG"],
    )
    st.plotly_chart(fig, use_container_width=True)


def simulated_note(result: Dict):
    st.caption("Simulated placeholder fields: " + ", ".join(result["simulated_fields"]))

# --- 3. STREAMLIT APP STRUCTURE ---

st.set_page_config(page_title="E-Consultation Comment Analysis", layout="wide")

PORTAL_CSS = f"""
<style>
.stApp {{ background-color: {MCA_COLORS["MCA_GRAY_BG"]}; }}
h1, h2, h3 {{ color: {MCA_COLORS["MCA_BLUE_DARK"]}; }}
h2, h3 {{ border-left: 4px solid {MCA_COLORS["MCA_BLUE_LIGHT"]}; padding-left: 8px; }}
[data-testid="stMetric"] {{
    background: white; border: 1px solid #e2e8f0; border-radius: 8px;
    padding: 16px; box-shadow: 0 2px 4px rgba(27, 58, 109, 0.08);
}}
[data-testid="stMetricValue"] {{ color: {MCA_COLORS["MCA_BLUE_DARK"]}; }}
div.stDownloadButton > button {{
    background: {MCA_COLORS["MCA_BLUE_DARK"]}; color: white; border: none; border-radius: 6px;
}}
div.stDownloadButton > button:hover {{ background: {MCA_COLORS["MCA_BLUE_LIGHT"]}; }}
</style>
"""
st.markdown(PORTAL_CSS, unsafe_allow_html=True)

st.header("🛡️ E-Consultation Comment Analysis Portal")
st.markdown("---")

if 'analysis' not in st.session_state:
    st.session_state.analysis = None
    st.session_state.source_name = None

tab1, tab2, tab3, tab4 = st.tabs(["📂 Upload & Analyze", "📊 Dashboard", "📈 Analytics", "📑 Reports"])

## --- TAB 1: UPLOAD & ANALYZE ---
with tab1:
    st.header("Upload Citizen Comments")
    st.markdown(
        "The CSV must have a header row with **comment_id**, **comment_text**, **timestamp** and "
        "**language** columns (an optional fifth column holds the user id). "
        "Fields containing commas can be wrapped in double quotes."
    )
    uploaded_file = st.file_uploader("Upload Comments File (CSV)", type=["csv", "txt"])

    if st.button("🚀 Analyze Comments", type="primary"):
        if uploaded_file is None:
            st.error("No file provided")
        else:
            result, error = analyze_file(uploaded_file.getvalue())
            if error:
                st.error(f"❗ {error}")
            else:
                st.session_state.analysis = result
                st.session_state.source_name = uploaded_file.name
                st.success(f"Analyzed **{result['total_comments']}** comments from **{uploaded_file.name}**. Open the Dashboard tab for results.")

## --- TAB 2: DASHBOARD ---
with tab2:
    result = st.session_state.analysis
    if result is None:
        st.info("No analysis yet. Upload a CSV in the 'Upload & Analyze' tab.")
    else:
        summary = result["summary"]
        sentiments = summary["sentiment_distribution"]

        st.subheader("📊 Overall Metrics")
        col_a, col_b, col_c, col_d = st.columns(4)
        col_a.metric("Total Comments", summary["total_comments"])
        col_b.metric("Supportive", sentiments["supportive"])
        col_c.metric("Critical", sentiments["critical"])
        col_d.metric("Suggestions", sentiments["suggestion"])

        st.markdown("---")
        col_pie, col_emotion, col_lang = st.columns(3)
        with col_pie:
            fig_pie = px.pie(
                counts_frame(sentiments, 'Sentiment'), values='Count', names='Sentiment',
                title='Sentiment Distribution', color='Sentiment', color_discrete_map=SENTIMENT_COLORS,
            )
            fig_pie.update_traces(textposition='inside', textinfo='percent+label')
            fig_pie.update_layout(showlegend=False, paper_bgcolor=MCA_COLORS["MCA_LIGHT_BLUE_BG"])
            st.plotly_chart(fig_pie, use_container_width=True)
        with col_emotion:
            fig_emotion = px.bar(
                counts_frame(summary["emotion_distribution"], 'Emotion'), x='Emotion', y='Count',
                title='Emotion Distribution', color_discrete_sequence=[MCA_COLORS["MCA_BLUE_DARK"]],
            )
            fig_emotion.update_layout(paper_bgcolor=MCA_COLORS["MCA_LIGHT_BLUE_BG"])
            st.plotly_chart(fig_emotion, use_container_width=True)
        with col_lang:
            fig_lang = px.pie(
                counts_frame(summary["language_distribution"], 'Language'), values='Count', names='Language',
                title='Language Distribution', hole=0.4,
            )
            fig_lang.update_layout(paper_bgcolor=MCA_COLORS["MCA_LIGHT_BLUE_BG"])
            st.plotly_chart(fig_lang, use_container_width=True)

        st.subheader("📈 Sentiment Trend (Last 7 Days)")
        df_trend = pd.DataFrame(summary["trends_over_time"]).melt(
            id_vars='date', value_vars=list(SENTIMENTS), var_name='Sentiment', value_name='Comments'
        )
        fig_line = px.line(
            df_trend, x='date', y='Comments', color='Sentiment',
            color_discrete_map=SENTIMENT_COLORS, markers=True,
        )
        fig_line.update_layout(paper_bgcolor=MCA_COLORS["MCA_LIGHT_BLUE_BG"])
        st.plotly_chart(fig_line, use_container_width=True)

        st.markdown("---")
        st.subheader("📋 Classified Comments")
        df_comments = comments_to_dataframe(result["comments"])
        _, col_raw_b = st.columns([3, 1])
        with col_raw_b:
            st.download_button(
                label="Download Analysis Data as CSV ⬇️",
                data=df_comments.to_csv(index=False).encode('utf-8'),
                file_name=f"analysis_{Path(st.session_state.source_name or 'comments').stem.replace(' ', '_')}.csv",
                mime="text/csv",
                key="analysis_download_csv",
            )
        st.dataframe(
            df_comments[['id', 'summary', 'language', 'sentiment', 'emotion', 'evidence_spans', 'priority_score', 'confidence']],
            use_container_width=True,
        )
        simulated_note(result)

## --- TAB 3: ANALYTICS ---
with tab3:
    result = st.session_state.analysis
    if result is None:
        st.info("No analysis yet. Upload a CSV in the 'Upload & Analyze' tab.")
    else:
        analytics = result["analytics"]

        st.subheader("📢 Keyword Analysis")
        col_kw, col_wc = st.columns(2)
        with col_kw:
            plot_keyword_bar_chart(analytics["keyword_trends"])
        with col_wc:
            st.markdown("**Overall Themes**")
            show_wordcloud(comment_wordcloud(tuple(c["text"] for c in result["comments"]), MCA_COLORS["MCA_LIGHT_BLUE_BG"]))

        st.subheader("🌐 Language Analysis")
        df_languages = pd.DataFrame(analytics["language_analysis"]).drop(columns=['sentiments'])
        st.dataframe(df_languages, use_container_width=True)

        col_hour, col_topic = st.columns(2)
        with col_hour:
            fig_hour = px.bar(
                pd.DataFrame(analytics["temporal_patterns"]), x='hour', y='comments',
                title='Comments by Hour of Day', color='avg_sentiment',
                color_continuous_scale=px.colors.diverging.RdYlGn,
            )
            fig_hour.update_layout(paper_bgcolor=MCA_COLORS["MCA_LIGHT_BLUE_BG"])
            st.plotly_chart(fig_hour, use_container_width=True)
        with col_topic:
            fig_topic = px.scatter(
                pd.DataFrame(analytics["sentiment_correlation"]), x='sentiment', y='volume',
                text='topic', title='Topic Sentiment vs Volume',
            )
            fig_topic.update_traces(textposition='top center')
            fig_topic.update_layout(paper_bgcolor=MCA_COLORS["MCA_LIGHT_BLUE_BG"])
            st.plotly_chart(fig_topic, use_container_width=True)

        fig_radar = px.line_polar(
            pd.DataFrame(analytics["emotion_radar"]), r='value', theta='emotion',
            line_close=True, range_r=[0, 100], title='Emotion Radar',
        )
        fig_radar.update_layout(paper_bgcolor=MCA_COLORS["MCA_LIGHT_BLUE_BG"])
        st.plotly_chart(fig_radar, use_container_width=True)

        st.markdown("---")
        col_sugg, col_contro = st.columns(2)
        with col_sugg:
            st.subheader("⭐ Priority Suggestions")
            for s in result["priority_suggestions"]:
                st.markdown(f"**{s['id']}. {s['text']}**  \nPriority {s['priority']} • mentioned {s['frequency']} times • {s['sentiment']}")
                st.caption("Evidence: " + ", ".join(s["evidence"]))
        with col_contro:
            st.subheader("⚖️ Controversial Topics")
            for t in result["controversial_topics"]:
                st.markdown(f"**{t['topic']}** ({t['total_mentions']} mentions)")
                st.progress(t["supportive"] / 100, text=f"{t['supportive']}% supportive, {t['critical']}% critical")
        simulated_note(result)

## --- TAB 4: REPORTS ---
with tab4:
    st.header("Generate Stakeholder Reports")
    st.caption("Reports are built from the standing consultation dataset, not from the uploaded file.")

    col_type, col_range, col_format = st.columns(3)
    report_type = col_type.selectbox("Report Type", list(REPORT_TYPE_NAMES), format_func=REPORT_TYPE_NAMES.get)
    date_range = col_range.selectbox("Date Range", list(DATE_RANGES), index=1, format_func=DATE_RANGES.get)
    export_format = col_format.selectbox("Format", list(EXPORT_FORMATS), format_func=EXPORT_FORMATS.get)
    include_charts = st.checkbox("Include charts", value=True)
    include_raw_data = st.checkbox("Include raw data", value=False)

    try:
        rendered = render_report(ReportRequest(
            type=report_type, format=export_format, date_range=date_range,
            include_charts=include_charts, include_raw_data=include_raw_data,
        ))
    except (ReportRequestError, ReportFormatError) as e:
        st.error(str(e))
    else:
        st.download_button(
            label=f"Download {REPORT_TYPE_NAMES[report_type]} ⬇️",
            data=rendered.body.encode('utf-8'),
            file_name=rendered.filename,
            mime=rendered.media_type,
            key="report_download",
        )
