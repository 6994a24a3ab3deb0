"""Catalog of past-paper sites and how each one must be fetched."""

from __future__ import annotations

from models import RENDER_DYNAMIC, RENDER_STATIC, SourceDescriptor

# Static sites ship their document links in the initial HTML. Dynamic sites
# only materialize them after client-side scripts run.
SOURCE_REGISTRY: tuple[SourceDescriptor, ...] = (
    SourceDescriptor(
        name="SAExamPapers",
        base_url="https://www.saexampapers.co.za/grade-12-physicalsciences/",
        render_mode=RENDER_STATIC,
    ),
    SourceDescriptor(
        name="TestPapers",
        base_url="https://www.testpapers.co.za/gr12-physics",
        render_mode=RENDER_DYNAMIC,
    ),
    SourceDescriptor(
        name="StanmorePhysics",
        base_url="https://stanmorephysics.com/physical-science-grade-12/",
        render_mode=RENDER_STATIC,
    ),
    SourceDescriptor(
        name="DBE",
        base_url=(
            "https://www.education.gov.za/Curriculum/NationalSeniorCertificate(NSC)"
            "Examinations/NSCPastExaminationpapers.aspx"
        ),
        render_mode=RENDER_STATIC,
    ),
)
