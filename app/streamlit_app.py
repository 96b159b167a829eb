"""
Streamlit front-end for product extraction review.

- Upload one or more PDFs with a document type; each is stored under
  `.tmp_uploads/public/`, extracted, and its products added to the table.
- Search narrows the table (name, manufacturer, spec ID, project).
- Selecting a product + field shows the cited page, its highlight boxes and
  a provenance badge ("AI generated" for classifier spec IDs).
- Fields can be edited in place; edits keep the original citations.
- Export the visible rows to CSV with per-column toggles.

The UI only wires core operations together; all state lives in the
repositories and a ViewState of ids.
"""

from __future__ import annotations

# --- ensure package imports work when launched directly ---
import sys, os
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

import asyncio
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd
import streamlit as st

# --- Internal modules ---
from app.config import get_settings
from app.models.schemas import FIELD_LABELS, DocumentType, FieldKey, Record, field_label
from app.services.classify import OpenAIClassifier
from app.services.edit import CellEditor
from app.services.export import EXPORT_MIME, default_columns, export_filename, export_to_table
from app.services.extract import ReductoBackend
from app.services.parse_pdf import count_pages, page_size
from app.services.pipeline import Upload, process_uploads
from app.services.repository import DocumentRepository, RecordRepository
from app.services.resolve import (
    PageTracker,
    ViewState,
    highlights_for_page,
    position,
    provenance_badge,
    resolve_field,
    select,
    selected_record,
    step,
    visible_records,
)
from app.services.storage import LocalStorage
from app.services.viewed import ViewedTracker
from app.util.exceptions import ConfigurationError
from app.util.layout import to_pixels

# ---------------------------- Page setup ----------------------------

st.set_page_config(page_title="SpecDocs Product Extractor", layout="wide")
st.title("SpecDocs Product Extractor")
st.caption("Upload PDFs → review extracted products against their source citations → export CSV.")

settings = get_settings()

# ---------------------------- Services (once per session) ----------------------------


def _init_session() -> None:
    if "records" in st.session_state:
        return
    data_dir = Path(settings.data_dir)
    st.session_state.records = RecordRepository(data_dir / "records.json")
    st.session_state.documents = DocumentRepository(data_dir / "documents.json")
    st.session_state.viewed = ViewedTracker(data_dir / "viewed.json")
    st.session_state.storage = LocalStorage(settings.upload_dir)
    st.session_state.view = ViewState()
    st.session_state.pages = PageTracker()
    st.session_state.columns = default_columns()


_init_session()
records_repo: RecordRepository = st.session_state.records
documents_repo: DocumentRepository = st.session_state.documents
viewed: ViewedTracker = st.session_state.viewed
storage: LocalStorage = st.session_state.storage

# ---------------------------- Sidebar: upload ----------------------------

with st.sidebar:
    st.header("Upload")
    doc_type = st.selectbox(
        "Document type",
        options=[t.value for t in DocumentType],
        format_func=lambda v: v.replace("_", " ").title(),
    )
    uploaded = st.file_uploader("PDF files", type=["pdf"], accept_multiple_files=True)
    backfill = st.checkbox("Classify missing spec IDs (OpenAI)", value=True)
    run_btn = st.button("Run Extraction", type="primary", disabled=not uploaded)

    if run_btn and uploaded:
        try:
            backend = ReductoBackend.from_settings(settings)
        except ConfigurationError as e:
            st.error(str(e))
            backend = None

        classifier = None
        if backfill:
            try:
                classifier = OpenAIClassifier.from_settings(settings)
            except ConfigurationError as e:
                st.warning(f"{e} Spec IDs will not be backfilled.")

        if backend is not None:
            uploads = [Upload(uf.name, uf.getvalue()) for uf in uploaded]
            with st.spinner(f"Processing {len(uploads)} file(s)..."):
                batch = asyncio.run(process_uploads(
                    uploads,
                    DocumentType(doc_type),
                    storage=storage,
                    backend=backend,
                    documents=documents_repo,
                    records=records_repo,
                    classifier=classifier,
                ))
            for outcome in batch.outcomes:
                if not outcome.ok:
                    st.error(f"{outcome.filename}: failed, please retry ({outcome.error})")
                elif outcome.record_count == 0:
                    st.info(f"{outcome.filename}: no products found")
                else:
                    st.success(f"{outcome.filename}: {outcome.record_count} products")

    st.divider()
    st.header("Documents")
    for doc in asyncio.run(documents_repo.list()):
        st.markdown(f"- `{Path(doc.filename).name}` · {doc.document_type.value} · **{doc.status.value}**")

# ---------------------------- Table ----------------------------

all_records: List[Record] = asyncio.run(records_repo.list())
view: ViewState = st.session_state.view

query = st.text_input("Search products", value=view.query, placeholder="Name, manufacturer, spec ID, project")
if query != view.query:
    view = view.model_copy(update={"query": query})

visible = visible_records(all_records, view)
viewed_ids = asyncio.run(viewed.viewed_ids())


def records_to_frame(records: List[Record]) -> pd.DataFrame:
    rows: List[Dict[str, str]] = []
    for r in records:
        row = {"id": r.id, "seen": "✓" if r.id in viewed_ids else ""}
        for key in FieldKey:
            row[FIELD_LABELS[key]] = r.field(key).value
        rows.append(row)
    return pd.DataFrame(rows)


if not all_records:
    st.info("Upload PDFs and click **Run Extraction** to see products.")
    st.stop()

st.caption(f"{len(visible)} of {len(all_records)} products")
table = st.dataframe(
    records_to_frame(visible),
    use_container_width=True,
    hide_index=True,
    on_select="rerun",
    selection_mode="single-row",
)
picked = table.selection.rows if table is not None else []
picked_id = visible[picked[0]].id if picked and picked[0] < len(visible) else None
# only a new click in the table moves the selection; prev/next owns it otherwise
if picked_id and picked_id != st.session_state.get("last_pick"):
    view = select(view, picked_id)
st.session_state.last_pick = picked_id

# ---------------------------- Detail / citation panel ----------------------------

record: Optional[Record] = selected_record(all_records, view)
if view.selected_id and record is None:
    st.warning("The selected product is hidden by the current search.")

if record is not None:
    asyncio.run(viewed.mark_viewed(record.id))

    nav_prev, nav_pos, nav_next = st.columns([1, 2, 1])
    with nav_prev:
        if st.button("◀ Prev"):
            view = step(all_records, view, -1)
    with nav_next:
        if st.button("Next ▶"):
            view = step(all_records, view, +1)
    st.session_state.view = view
    record = selected_record(all_records, view)
    with nav_pos:
        pos = position(all_records, view)
        if pos:
            st.markdown(f"**{pos[0]} / {pos[1]}**")

    key = st.radio(
        "Field",
        options=[k.value for k in FieldKey],
        index=[k.value for k in FieldKey].index(view.field_key.value),
        format_func=field_label,
        horizontal=True,
    )
    view = select(view, record.id, key)
    field = resolve_field(record, key)
    badge = provenance_badge(record, key)
    st.markdown(f"**{field_label(key)}:** {field.value or '-'}  \n_{badge.label}_")

    # ---- edit ----
    editor = CellEditor(records_repo, record.id, FieldKey(key))
    editor.begin(record, view.selected_id)
    new_value = st.text_input("Edit value", value=field.value, key=f"edit-{record.id}-{key}")
    if st.button("Save"):
        editor.set_draft(new_value)
        updated = asyncio.run(editor.commit(record))
        st.toast("Saved" if updated else "No change")
        st.rerun()

    # ---- source page ----
    doc = next((d for d in asyncio.run(documents_repo.list()) if d.id == record.document_id), None)
    if doc is not None:
        pdf_path = storage.local_path(doc.filename)
        pages: PageTracker = st.session_state.pages
        pages.load_document(doc.id, count_pages(pdf_path) if pdf_path.exists() else 0)
        pages.sync(record, key)
        if pages.total_pages:
            page = st.number_input(
                "Page", min_value=1, max_value=pages.total_pages, value=pages.current_page or 1
            )
            pages.go_to(int(page))
            boxes = highlights_for_page(record, key, pages.current_page or 1)
            width, height = page_size(pdf_path, pages.current_page or 1)
            with st.expander(f"Source: page {pages.current_page} of {pages.total_pages}", expanded=True):
                st.markdown(f"[Open PDF]({storage.url_for(doc.filename)})")
                for c in boxes:
                    x0, y0, x1, y1 = to_pixels(c.bounding_box, width, height)
                    st.code(
                        f"{c.block_type.value} ({c.confidence.value}) "
                        f"[{x0:.0f}, {y0:.0f}, {x1:.0f}, {y1:.0f}]\n{c.content}"
                    )
                if not boxes:
                    st.write("No highlight on this page.")

st.session_state.view = view

# ---------------------------- Export ----------------------------

st.markdown("## Export")
columns = st.session_state.columns
toggle_cols = st.columns(len(columns))
for col_ui, column in zip(toggle_cols, columns):
    with col_ui:
        column.enabled = st.checkbox(column.label, value=column.enabled, key=f"col-{column.field_key.value}")

st.download_button(
    "Download CSV (visible rows)",
    data=export_to_table(visible, columns),
    file_name=export_filename(settings.export_prefix),
    mime=EXPORT_MIME,
    use_container_width=True,
    disabled=not any(c.enabled for c in columns),
)
