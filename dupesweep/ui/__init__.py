# dupesweep/ui/__init__.py
from .html_reporter import generate_html_report, render_html_report
