# Configuration file for the Sphinx documentation builder.
#
# For the full list of built-in configuration values, see the documentation:
# https://www.sphinx-doc.org/en/master/usage/configuration.html

# -- Project information -----------------------------------------------------
# https://www.sphinx-doc.org/en/master/usage/configuration.html#project-information
import os
import sys
sys.path.insert(0, os.path.abspath('../..'))  # Repository root holding the bucketfs package
import sphinx_rtd_theme  # noqa: F401  (registers the theme)

from bucketfs import __version__

project = 'bucketfs'
copyright = '2025, Accelerated Cloud Storage'
author = 'Accelerated Cloud Storage'
release = __version__

# -- General configuration ---------------------------------------------------
# https://www.sphinx-doc.org/en/master/usage/configuration.html#general-configuration

extensions = [
    'sphinx.ext.autodoc',
    'sphinx.ext.napoleon',  # For Google-style docstrings
]

autodoc_default_options = {
    'members': True,
    'undoc-members': True,
    'exclude-members': 'BASE58_ALPHABET, LOG_FORMAT',
}

# fusepy loads libfuse on import; documentation builds must not need it
autodoc_mock_imports = ['fuse']

templates_path = ['_templates']
exclude_patterns = []

# -- Options for HTML output -------------------------------------------------
# https://www.sphinx-doc.org/en/master/usage/configuration.html#options-for-html-output

html_theme = 'sphinx_rtd_theme'
html_static_path = []
