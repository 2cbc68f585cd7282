"""
presenter.py — Turns a DistrictMatch into renderable display content.

The output is plain data; the widget front end projects it onto the page.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import quote

from bpou_finder.config import Settings, get_settings
from bpou_finder.contacts import ContactDirectory
from bpou_finder.models import ContactRecord, DistrictMatch

NOT_AVAILABLE = "Not available"

# (channel, record attribute, label)
_CHANNELS = (
    ("website", "website", "Website"),
    ("phone", "phone", "Phone"),
    ("email", "email", "Email"),
    ("social", "facebook", "Facebook"),
    ("social", "twitter", "Twitter"),
    ("meeting", "meeting_info", "Meetings"),
)


@dataclass
class ContactLine:
    channel: str
    label: str
    value: Optional[str]
    available: bool
    text: str


@dataclass
class DistrictPanel:
    summary: str
    name: Optional[str]
    link_label: Optional[str] = None
    link_url: Optional[str] = None
    notice: Optional[str] = None
    lines: list[ContactLine] = field(default_factory=list)


@dataclass
class FeedbackLink:
    label: str
    subject: str
    body: str
    url: str


@dataclass
class DisplayContent:
    preview: bool
    bpou: DistrictPanel
    cd: DistrictPanel
    feedback: FeedbackLink
    disclosure: Optional[str] = None


def _contact_lines(record: ContactRecord, preview: bool) -> list[ContactLine]:
    lines = []
    for channel, attribute, label in _CHANNELS:
        if preview and channel != "website":
            continue
        value = getattr(record, attribute)
        lines.append(ContactLine(
            channel=channel,
            label=label,
            value=value,
            available=value is not None,
            text=value if value is not None else NOT_AVAILABLE,
        ))
    return lines


def _bpou_panel(name: Optional[str], record: ContactRecord, preview: bool) -> DistrictPanel:
    if name is None:
        return DistrictPanel(summary="Couldn't determine your BPOU.", name=None)

    panel = DistrictPanel(
        summary=f"Your local BPOU is: {name}",
        name=name,
        lines=_contact_lines(record, preview),
    )
    if record.website:
        panel.link_label = "Visit BPOU website"
        panel.link_url = record.website
    else:
        panel.notice = "Couldn't find a local BPOU website."
    return panel


def _cd_panel(cd_id: str, record: ContactRecord, preview: bool) -> DistrictPanel:
    return DistrictPanel(
        summary=f"Your Congressional District is: {cd_id}",
        name=cd_id,
        link_label=f"Visit Congressional District {cd_id} Republicans website",
        link_url=record.website or "#",
        lines=_contact_lines(record, preview),
    )


def feedback_link(match: DistrictMatch, settings: Optional[Settings] = None) -> FeedbackLink:
    """Build the "suggest a correction" mailto link for a match."""
    settings = settings or get_settings()
    bpou = match.bpou_name or "N/A"
    subject = f"BPOU Finder correction: BPOU {bpou}, CD {match.cd_id}"
    body = (
        f"The BPOU Finder showed BPOU {bpou} and Congressional District "
        f"{match.cd_id} for my location.\n\nThe correct information is:\n"
    )
    url = f"mailto:{settings.feedback_email}?subject={quote(subject)}&body={quote(body)}"
    return FeedbackLink(
        label="Something look wrong? Suggest a correction",
        subject=subject,
        body=body,
        url=url,
    )


def present(
    match: DistrictMatch,
    directory: ContactDirectory,
    used_fallback_address: Optional[str] = None,
    preview: bool = False,
    settings: Optional[Settings] = None,
) -> DisplayContent:
    """
    Describe what the widget should show for ``match``.

    Args:
        match:                 Result of a lookup.
        directory:             Contact tables.
        used_fallback_address: Simplified address the geocoder fell back to.
        preview:               Hover preview; only website presence is shown.
    """
    disclosure = None
    if used_fallback_address:
        disclosure = (
            f"Exact address not found. Showing results for: {used_fallback_address}"
        )

    return DisplayContent(
        preview=preview,
        bpou=_bpou_panel(match.bpou_name, directory.lookup_bpou(match.bpou_name), preview),
        cd=_cd_panel(match.cd_id, directory.lookup_cd(match.cd_id), preview),
        feedback=feedback_link(match, settings),
        disclosure=disclosure,
    )
