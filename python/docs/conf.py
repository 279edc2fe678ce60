"""Sphinx configuration for the Retiremint scenario resolution engine."""

import os
import sys

# Add the project root to sys.path so autodoc can find the package
sys.path.insert(0, os.path.abspath(".."))

# -- Project information ---

project = "Retiremint Scenario Resolution"
author = "Retiremint Contributors"
release = "0.1.0"

# -- General configuration ---

extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.napoleon",
    "sphinx.ext.viewcode",
    "sphinx.ext.intersphinx",
    "sphinx_autodoc_typehints",
]

# Napoleon settings (Google-style docstrings)
napoleon_google_docstrings = True
napoleon_numpy_docstrings = False
napoleon_include_init_with_doc = True

# Autodoc settings
autodoc_member_order = "bysource"
autodoc_typehints = "description"
autodoc_default_options = {
    "members": True,
    "undoc-members": False,
    "show-inheritance": True,
}

# Cross-references into the libraries the resolver types come from
intersphinx_mapping = {
    "python": ("https://docs.python.org/3", None),
    "numpy": ("https://numpy.org/doc/stable", None),
    "pandas": ("https://pandas.pydata.org/docs", None),
    "networkx": ("https://networkx.org/documentation/stable", None),
}

# -- Options for HTML output ---

html_theme = "alabaster"
html_title = "Retiremint scenario resolution"

# Exclude patterns
exclude_patterns = ["_build", "Thumbs.db", ".DS_Store"]
