# Sphinx configuration for the SpecDocs API docs.
# Build from the repo root:  sphinx-build -b html . _build/html
# Reference: https://www.sphinx-doc.org/en/master/usage/configuration.html

import os
import sys

# repo root holds app/ and extraction/
sys.path.insert(0, os.path.abspath("."))

# -- Project -----------------------------------------------------------------
project = "SpecDocs"
author = "SpecDocs contributors"
copyright = "2025, SpecDocs contributors"
version = "0.1"
release = "0.1.0"

# -- Extensions --------------------------------------------------------------
extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.autosummary",
    "sphinx.ext.napoleon",
    "sphinx.ext.intersphinx",
]
autosummary_generate = True

# network SDKs and the UI aren't needed to read docstrings
autodoc_mock_imports = ["reducto", "openai", "streamlit"]
autodoc_member_order = "bysource"
autodoc_typehints = "description"
autodoc_default_options = {
    "members": True,
    "show-inheritance": True,
    "exclude-members": "model_config, model_fields, model_computed_fields",
}

# docstrings here are short Google-style blocks (Args/Returns/Raises)
napoleon_google_docstring = True
napoleon_numpy_docstring = False

intersphinx_mapping = {
    "python": ("https://docs.python.org/3", None),
    "pandas": ("https://pandas.pydata.org/docs", None),
}

exclude_patterns = ["_build", ".tmp_uploads", ".data", "tests", "scripts", "*.md"]
root_doc = "index"

# -- HTML --------------------------------------------------------------------
html_theme = "alabaster"
html_title = f"{project} {release}"
