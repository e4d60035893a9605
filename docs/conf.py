# Configuration file for the Sphinx documentation builder.
#
# For the full list of built-in configuration values, see the documentation:
# https://www.sphinx-doc.org/en/master/usage/configuration.html

import sys
from pathlib import Path

sys.path.insert(0, str(Path("../src").resolve()))

# -- Project information -----------------------------------------------------

project = "QuDirac"
copyright = "2025, Qilimanjaro Quantum Tech"
author = "Qilimanjaro Quantum Tech"

# -- General configuration ---------------------------------------------------

extensions = [
    "sphinx.ext.napoleon",
    "sphinx.ext.mathjax",
    "sphinx.ext.viewcode",
    "autoapi.extension",
]

templates_path = ["_templates"]
exclude_patterns = ["_build", "Thumbs.db", ".DS_Store"]

pygments_style = "sphinx"

# Napoleon settings
napoleon_google_docstring = True
napoleon_numpy_docstring = False
napoleon_preprocess_types = True

# AutoAPI settings
autoapi_type = "python"
autoapi_dirs = ["../src/qudirac"]
autoapi_root = "code/api"
autoapi_add_toctree_entry = True
autoapi_member_order = "bysource"
autoapi_options = [
    "members",
    "undoc-members",
    "show-inheritance",
    "show-module-summary",
]
autoapi_python_class_content = "both"
autoapi_python_use_implicit_namespaces = False

add_module_names = False
autoapi_keep_files = False

# -- Options for HTML output -------------------------------------------------

html_title = project
html_copy_source = False
html_show_sourcelink = False


def skip_yaml_class_methods(app, what, name, obj, skip, options):  # noqa: ANN001, ANN201
    if what == "method" and any(x in name for x in ("from_yaml", "to_yaml")):
        return True
    return skip


def setup(sphinx):  # noqa: ANN001, ANN201
    sphinx.connect("autoapi-skip-member", skip_yaml_class_methods)
