from .generate_report import build_digest, build_report, render_digest, render_report

__all__ = ["build_digest", "build_report", "render_digest", "render_report"]
