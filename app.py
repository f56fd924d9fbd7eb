import asyncio
import logging
import os
import tempfile

import streamlit as st
from dotenv import load_dotenv

from genedai.agents.evaluate_agent import EvaluateAgent
from genedai.agents.keyword_agent import KeywordAgent
from genedai.agents.parse_agent import ALLOWED_EXTENSIONS, ParseAgent
from genedai.agents.ranking_agent import RankingAgent
from genedai.analyzer import SyllabusAnalyzer, UploadedSyllabus
from genedai.catalog import load_catalog
from genedai.completion import OpenAICompletionService
from genedai.config import load_settings
from genedai.schemas import CourseInfo, RequirementFit, SyllabusAnalysis
from genedai.storage import AnalysisStore
from genedai.utils import safe_filename

load_dotenv()
logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")


# ── Page config ───────────────────────────────────────────────────────────────
st.set_page_config(
    page_title="GenEdAI · Syllabus Requirement Matching",
    page_icon="🎓",
    layout="wide",
    initial_sidebar_state="expanded",
)

# ── Global CSS ────────────────────────────────────────────────────────────────
st.markdown("""
<style>
:root {
  --ink:        #22263A;
  --ink-60:     #6E748A;
  --ink-30:     #B4B9CC;
  --surface:    #F0F2F8;
  --card:       #FFFFFF;
  --border:     #E2E6F0;
  --accent:     #5B6CF5;
  --accent-lt:  #EAECFE;
  --green:      #27A06E;
  --green-lt:   #D4F3E7;
  --red:        #DC5B68;
  --red-lt:     #FCEAEC;
  --amber:      #C8841E;
  --amber-lt:   #FCF0D8;
}

.page-header {
  margin-bottom: 1.5rem;
  padding-bottom: 1rem;
  border-bottom: 1px solid var(--border);
}
.page-title { font-size: 1.8rem; font-weight: 700; color: var(--ink); }
.page-title em { font-style: italic; color: var(--accent); }
.page-subtitle { font-size: 0.84rem; color: var(--ink-60); margin-top: 4px; }

.section-label {
  font-size: 0.68rem;
  font-weight: 700;
  letter-spacing: 0.12em;
  text-transform: uppercase;
  color: var(--ink-30);
  margin: 1.25rem 0 0.5rem;
}

.badge {
  display: inline-block;
  padding: 3px 10px;
  border-radius: 999px;
  font-size: 0.72rem;
  font-weight: 600;
}
.badge-green { background: var(--green-lt); color: var(--green); }
.badge-red   { background: var(--red-lt);   color: var(--red); }
.badge-amber { background: var(--amber-lt); color: var(--amber); }
.badge-ink   { background: var(--surface);  color: var(--ink-60); }

.fit-card {
  background: var(--card);
  border: 1px solid var(--border);
  border-radius: 12px;
  padding: 0.9rem 1.2rem;
  margin-bottom: 0.6rem;
}
.fit-name   { font-weight: 600; font-size: 0.92rem; color: var(--ink); }
.fit-reason { font-size: 0.8rem; color: var(--ink-60); margin-top: 4px; line-height: 1.5; }
</style>
""", unsafe_allow_html=True)


# ── Agents ─────────────────────────────────────────────────────────────────────
@st.cache_resource
def get_analyzer():
    settings = load_settings()
    catalog = load_catalog()
    service = OpenAICompletionService(settings.openai_api_key, settings.openai_model)
    analyzer = SyllabusAnalyzer(
        catalog=catalog,
        keyword_agent=KeywordAgent(),
        evaluate_agent=EvaluateAgent(service, settings.batch_size, settings.max_concurrent_batches),
        ranking_agent=RankingAgent(service),
        parse_agent=ParseAgent(settings.llama_cloud_api_key),
    )
    return settings, catalog, analyzer


try:
    settings, catalog, analyzer = get_analyzer()
    agents_ok = True
except Exception as e:
    agents_ok = False
    agent_error = str(e)

if "store" not in st.session_state:
    st.session_state["store"] = AnalysisStore()
store: AnalysisStore = st.session_state["store"]


def _save_upload(uploaded_file) -> UploadedSyllabus:
    suffix = os.path.splitext(safe_filename(uploaded_file.name))[1].lower()
    with tempfile.NamedTemporaryFile(delete=False, suffix=suffix) as tmp:
        tmp.write(uploaded_file.getbuffer())
        path = tmp.name
    return UploadedSyllabus(
        file_name=uploaded_file.name,
        file_path=path,
        file_size=len(uploaded_file.getbuffer()),
    )


def _remove_uploads(uploads):
    for u in uploads:
        try:
            os.unlink(u.file_path)
        except OSError:
            logging.getLogger(__name__).warning(f"Could not remove temporary upload {u.file_path}")


# ── Sidebar navigation ─────────────────────────────────────────────────────────
with st.sidebar:
    st.markdown("## Gen Ed *AI*")
    st.caption("Syllabus requirement matching")

    page = st.radio(
        "nav",
        ["🎓  Analyze Syllabi", "🗂  Saved Analyses", "📘  Requirements Guide"],
        label_visibility="collapsed",
    )

    if agents_ok:
        mode = f"AI analysis · {settings.openai_model}" if settings.openai_api_key else "Keyword analysis only"
        st.caption(f"✓ {mode}")
    else:
        st.caption("✗ Configuration error")


# ── Helper renderers ───────────────────────────────────────────────────────────
def _score_badge(score: int) -> str:
    if score >= 75:
        cls = "badge-green"
    elif score >= 50:
        cls = "badge-amber"
    else:
        cls = "badge-red"
    return f'<span class="badge {cls}">{score}/100</span>'


def _method_badge(method: str) -> str:
    if method == "ai":
        return '<span class="badge badge-green">AI analysis</span>'
    return '<span class="badge badge-amber">Keyword analysis</span>'


def _render_fit(fit: RequirementFit):
    slos = ", ".join(str(i) for i in fit.matching_slos) or "none"
    st.markdown(f"""
<div class="fit-card">
  <div class="fit-name">{fit.name} &nbsp; {_score_badge(fit.match_score)}</div>
  <div class="fit-reason">Matching SLOs: {slos}</div>
  <div class="fit-reason">{fit.reasoning}</div>
</div>
""", unsafe_allow_html=True)


def _render_analysis(analysis: SyllabusAnalysis):
    code = f" ({analysis.course_code})" if analysis.course_code else ""
    st.markdown(f"""
<div style="display:flex; gap:8px; flex-wrap:wrap; margin-bottom:0.75rem;">
  {_method_badge(analysis.analysis_method)}
  <span class="badge badge-ink">✅ {len(analysis.approved_requirements)} approved</span>
  <span class="badge badge-ink">❌ {len(analysis.rejected_requirements)} not met</span>
</div>
""", unsafe_allow_html=True)
    st.markdown(f"**{analysis.course_name}**{code} · {analysis.file_name}")

    if analysis.best_fit or analysis.potential_fits or analysis.poor_fits:
        st.markdown('<div class="section-label">Best fit</div>', unsafe_allow_html=True)
        if analysis.best_fit:
            _render_fit(analysis.best_fit)
        else:
            st.caption("No single best fit identified.")
        if analysis.potential_fits:
            st.markdown('<div class="section-label">Potential fits</div>', unsafe_allow_html=True)
            for fit in analysis.potential_fits:
                _render_fit(fit)
        if analysis.poor_fits:
            with st.expander(f"Poor fits ({len(analysis.poor_fits)})"):
                for fit in analysis.poor_fits:
                    _render_fit(fit)

    tab_met, tab_unmet = st.tabs([
        f"✅ Approved ({len(analysis.approved_requirements)})",
        f"❌ Not met ({len(analysis.rejected_requirements)})",
    ])
    with tab_met:
        if not analysis.approved_requirements:
            st.caption("No requirements approved.")
        for req in analysis.approved_requirements:
            st.markdown(f"**{req.name}**")
            for element in req.matching_requirements:
                st.markdown(f"- {element}")
            st.caption(f"Matching SLOs: {', '.join(map(str, req.matching_slos)) or 'none'}")
    with tab_unmet:
        if not analysis.rejected_requirements:
            st.caption("No requirements rejected.")
        for req in analysis.rejected_requirements:
            st.markdown(f"**{req.name}**")
            for element in req.missing_requirements:
                st.markdown(f"- {element}")
            st.caption(f"Missing SLOs: {', '.join(map(str, req.missing_slos)) or 'none'}")

    if analysis.unassessed_requirements:
        st.warning(
            "Unable to assess: " + ", ".join(analysis.unassessed_requirements)
            + ". The AI service did not return a verdict for these requirements."
        )


# ══════════════════════════════════════════════════════════════════════════════
# PAGE: ANALYZE
# ══════════════════════════════════════════════════════════════════════════════
if page == "🎓  Analyze Syllabi":
    st.markdown("""
<div class="page-header">
  <div class="page-title">Analyze <em>Syllabi</em></div>
  <div class="page-subtitle">Upload course syllabi and see which Gen Ed requirements they satisfy.</div>
</div>
""", unsafe_allow_html=True)

    if not agents_ok:
        st.error(f"⚠ {agent_error}")
        st.stop()

    files = st.file_uploader(
        "Drop syllabi here or click to browse",
        type=[ext.lstrip(".") for ext in ALLOWED_EXTENSIONS],
        accept_multiple_files=True,
        key="syllabi",
    )

    course_info = None
    if files and len(files) == 1:
        with st.expander("Course details (optional)"):
            override = st.checkbox("Use my own course name and code")
            name = st.text_input("Course name", disabled=not override)
            code = st.text_input("Course code", disabled=not override)
            if override:
                course_info = CourseInfo(course_name=name, course_code=code)

    run = st.button("Analyze →", disabled=not files, use_container_width=True)

    if run and files:
        uploads = [_save_upload(f) for f in files]
        try:
            with st.spinner(f"Analyzing {len(uploads)} syllabus file(s)…"):
                if len(uploads) == 1:
                    analyses = [asyncio.run(analyzer.analyze_file(uploads[0], course_info))]
                    failed = []
                else:
                    batch = asyncio.run(analyzer.analyze_files(uploads))
                    analyses, failed = batch.successes, batch.errors
        except Exception as e:
            st.error(f"{files[0].name}: {e}")
            analyses, failed = [], []
        finally:
            _remove_uploads(uploads)

        if failed:
            with st.expander("⚠ Some files failed", expanded=True):
                for err in failed:
                    st.error(f"{err.file_name}: {err.error}")

        for analysis in analyses:
            stored = store.create(analysis)
            st.divider()
            st.caption(f"Saved as analysis #{stored.id}")
            _render_analysis(stored)


# ══════════════════════════════════════════════════════════════════════════════
# PAGE: SAVED ANALYSES
# ══════════════════════════════════════════════════════════════════════════════
elif page == "🗂  Saved Analyses":
    st.markdown("""
<div class="page-header">
  <div class="page-title">Saved <em>Analyses</em></div>
  <div class="page-subtitle">Browse, search and delete analyses from this session.</div>
</div>
""", unsafe_allow_html=True)

    query = st.text_input("Search by course name or code")
    rows = store.search(query) if query else store.recent(limit=20)

    if not rows:
        st.caption("No analyses yet.")
    for row in rows:
        label = f"#{row.id} · {row.course_name} {row.course_code} · {row.upload_date:%Y-%m-%d %H:%M} · {row.analysis_method}"
        with st.expander(label):
            _render_analysis(row)
            if st.button("Delete analysis", key=f"delete-{row.id}"):
                store.delete(row.id)
                st.rerun()


# ══════════════════════════════════════════════════════════════════════════════
# PAGE: REQUIREMENTS GUIDE
# ══════════════════════════════════════════════════════════════════════════════
elif page == "📘  Requirements Guide":
    st.markdown("""
<div class="page-header">
  <div class="page-title">Requirements <em>Guide</em></div>
  <div class="page-subtitle">The Gen Ed requirements every syllabus is checked against.</div>
</div>
""", unsafe_allow_html=True)

    if not agents_ok:
        st.error(f"⚠ {agent_error}")
        st.stop()

    for req in catalog:
        with st.expander(req.name):
            st.markdown(req.description)
            st.markdown('<div class="section-label">Student learning outcomes</div>', unsafe_allow_html=True)
            for i, slo in enumerate(req.slos, start=1):
                st.markdown(f"{i}. {slo}")
            st.markdown('<div class="section-label">Required elements</div>', unsafe_allow_html=True)
            for element in req.required_elements:
                st.markdown(f"- {element}")
