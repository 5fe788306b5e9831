"""
AI CV Analyzer – Streamlit frontend.
No business logic in layout; extraction and LLM calls run in the cv_pipeline layer.
"""

import base64
import csv
import io
import json
from collections import Counter
from typing import Any, Dict, List

import streamlit as st

from config import LLM_API_KEY, MODEL_NAME, SUPPORTED_FILE_TYPES
from cv_pipeline.batch import run_cv_batch
from schemas.documents import ProcessingResult

CANDIDATE_STATUS_OPTIONS = ["new", "screening", "interview", "offer", "rejected"]


def _build_documents(uploaded_files: List[Any], candidate_status: str) -> List[Dict[str, str]]:
    """Turn Streamlit uploads into the documents payload used by the API."""
    documents = []
    for f in uploaded_files:
        name = f.name or ""
        file_type = name.rsplit(".", 1)[-1].lower() if "." in name else ""
        documents.append(
            {
                "base64": base64.b64encode(f.getvalue()).decode("ascii"),
                "fileType": file_type,
                "candidateStatus": candidate_status,
            }
        )
    return documents


def _skill_frequency_summary(results: List[ProcessingResult], top_n: int = 10) -> List[tuple]:
    """Top N skills by frequency across successfully analyzed CVs."""
    skills = []
    for r in results:
        if r.ok and r.result and r.result.skills:
            skills.extend(s.strip() for s in r.result.skills if s and str(s).strip())
    return Counter(skills).most_common(top_n)


def _export_json(results: List[ProcessingResult], file_names: List[str]) -> bytes:
    """Export results (with source file names) to JSON bytes."""
    payload = []
    for r in results:
        item = r.to_dict()
        item["fileName"] = file_names[r.index] if r.index < len(file_names) else ""
        payload.append(item)
    return json.dumps(payload, ensure_ascii=False, indent=2).encode("utf-8")


def _export_csv(results: List[ProcessingResult], file_names: List[str]) -> bytes:
    """Export one row per CV to CSV bytes."""
    out = io.StringIO()
    writer = csv.writer(out)
    headers = ["file", "status", "name", "contact", "summary", "skills", "languages", "error"]
    writer.writerow(headers)
    for r in results:
        rec = r.result
        contact = ""
        languages = ""
        if rec is not None:
            ci = rec.contact_information
            contact = "; ".join(f"{k}: {v}" for k, v in ci.items()) if isinstance(ci, dict) else ci
            languages = "; ".join(
                lang if isinstance(lang, str) else f"{lang.language} ({lang.proficiency})".replace(" ()", "")
                for lang in rec.languages
            )
        writer.writerow(
            [
                file_names[r.index] if r.index < len(file_names) else "",
                r.status,
                rec.name if rec else "",
                contact,
                (rec.summary if rec else "")[:500],
                "; ".join(rec.skills) if rec else "",
                languages,
                r.error or "",
            ]
        )
    return out.getvalue().encode("utf-8")


def _render_result(result: ProcessingResult, file_name: str) -> None:
    st.markdown("---")
    if not result.ok:
        st.markdown(f"### {file_name}")
        st.error(result.error or "Processing failed")
        if result.raw_content:
            with st.expander("Raw model output"):
                st.code(result.raw_content)
        return

    rec = result.result
    st.markdown(f"### {rec.name or 'Unnamed candidate'}")
    st.caption(f"**File:** {file_name}")
    ci = rec.contact_information
    if ci:
        if isinstance(ci, dict):
            st.caption(" · ".join(f"**{k}:** {v}" for k, v in ci.items() if v))
        else:
            st.caption(ci)
    if rec.summary:
        st.markdown(rec.summary)
    if rec.skills:
        badges = " ".join(f"`{s}`" for s in rec.skills[:20] if s and str(s).strip())
        if badges:
            st.markdown(badges)
    if rec.work_experience:
        with st.expander(f"Work experience ({len(rec.work_experience)})"):
            for w in rec.work_experience:
                if isinstance(w, str):
                    st.markdown(f"- {w}")
                else:
                    st.markdown(f"**{w.job_title or '—'}** · {w.company or '—'} · *{w.duration}*")
                    if w.description:
                        st.caption(w.description)
    if rec.education:
        with st.expander(f"Education ({len(rec.education)})"):
            for e in rec.education:
                if isinstance(e, str):
                    st.markdown(f"- {e}")
                else:
                    st.markdown(f"**{e.degree or '—'}** {e.field_of_study} · {e.institution} · *{e.dates}*")
    with st.expander("Full JSON"):
        st.json(rec.to_dict())


def render_layout() -> None:
    """Streamlit page layout; processing uses the cv_pipeline layer."""
    st.set_page_config(page_title="AI CV Analyzer", layout="wide")
    st.title("AI CV Analyzer")
    st.markdown(f"*Extract structured candidate data from CVs using AI ({MODEL_NAME}).*")
    st.divider()

    st.subheader("Upload CVs")
    uploaded_files = st.file_uploader(
        "CV files",
        type=list(SUPPORTED_FILE_TYPES),
        accept_multiple_files=True,
        key="cv_files",
        help="PDF, DOCX or image (PNG/JPG). Each file is analyzed independently.",
    )
    candidate_status = st.selectbox(
        "Candidate status", options=CANDIDATE_STATUS_OPTIONS, index=0, key="candidate_status"
    )
    analyze_clicked = st.button("Analyze", type="primary", key="analyze_btn")

    if "results" not in st.session_state:
        st.session_state["results"] = []
    if "file_names" not in st.session_state:
        st.session_state["file_names"] = []
    if "error" not in st.session_state:
        st.session_state["error"] = None

    if analyze_clicked:
        if not uploaded_files:
            st.session_state["error"] = "Please upload at least one CV."
            st.session_state["results"] = []
        elif not LLM_API_KEY:
            st.session_state["error"] = "LLM_API_KEY is not set. Add it to your .env file."
            st.session_state["results"] = []
        else:
            st.session_state["error"] = None
            documents = _build_documents(uploaded_files, candidate_status)
            with st.spinner(f"Analyzing {len(documents)} CV(s)…"):
                try:
                    st.session_state["results"] = run_cv_batch(documents)
                    st.session_state["file_names"] = [f.name for f in uploaded_files]
                except Exception as e:
                    st.session_state["error"] = f"Analysis failed: {str(e)}"
                    st.session_state["results"] = []

    if st.session_state.get("error"):
        st.error(st.session_state["error"])

    results: List[ProcessingResult] = st.session_state.get("results") or []
    file_names: List[str] = st.session_state.get("file_names") or []

    st.divider()
    st.subheader("Results")
    if not results:
        if not analyze_clicked and not st.session_state.get("error"):
            st.info("Upload one or more CVs, then click **Analyze**.")
        return

    ok = [r for r in results if r.ok]
    st.markdown(f"**Processed:** {len(results)} · **Succeeded:** {len(ok)} · **Failed:** {len(results) - len(ok)}")

    skill_summary = _skill_frequency_summary(results)
    if skill_summary:
        with st.expander("Top skills (frequency)"):
            for skill, count in skill_summary:
                st.markdown(f"- **{skill}** ({count})")

    col1, col2 = st.columns(2)
    with col1:
        st.download_button(
            "Export to JSON",
            data=_export_json(results, file_names),
            file_name="cv_results.json",
            mime="application/json",
            key="export_json",
        )
    with col2:
        st.download_button(
            "Export to CSV",
            data=_export_csv(results, file_names),
            file_name="cv_results.csv",
            mime="text/csv",
            key="export_csv",
        )

    for r in results:
        _render_result(r, file_names[r.index] if r.index < len(file_names) else f"Document {r.index}")


if __name__ == "__main__":
    render_layout()
