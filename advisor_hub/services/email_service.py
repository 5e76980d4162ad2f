"""Lead notification emails sent through the Resend REST API."""

from __future__ import annotations

import html
import logging
from typing import Any, Optional, Tuple

import httpx

from ..models import Advisor, Lead

logger = logging.getLogger(__name__)

RESEND_EMAILS_URL = 'https://api.resend.com/emails'

REVENUE_POINTS = {'$5M+': 40, '$1M-5M': 25, '$0-1M': 10}
CPA_STATUS_POINTS = {'looking-to-replace': 25, 'no': 15}
CPA_STATUS_LABELS = {
    'yes': 'Yes',
    'no': 'No',
    'looking-to-replace': 'Looking to Replace',
}


def calculate_lead_score(lead: Lead) -> int:
    """Lead quality from 0 to 100: revenue bracket, CPA status, captive interest, engagement."""

    score = 20
    score += REVENUE_POINTS.get(lead.estimated_revenue or '', 0)
    score += CPA_STATUS_POINTS.get(lead.has_strategic_cpa or '', 0)
    if lead.interested_in_captives:
        score += 15
    if lead.message and len(lead.message) > 20:
        score += 5
    return min(100, score)


def is_hot_lead(lead: Lead) -> bool:
    return lead.has_strategic_cpa == 'looking-to-replace' or bool(lead.interested_in_captives)


def score_label(score: int) -> str:
    if score >= 80:
        return 'Hot Lead'
    if score >= 50:
        return 'Qualified Lead'
    return 'New Lead'


class EmailService:
    """Sends lead alerts. Never raises: every failure becomes ``(False, reason)``."""

    def __init__(
        self,
        api_key: str = '',
        recipient: str = '',
        sender: str = 'The Alpha Directory <notifications@resend.dev>',
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._api_key = api_key
        self._recipient = recipient
        self._sender = sender
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Any) -> 'EmailService':
        return cls(
            api_key=settings.resend_api_key,
            recipient=settings.notification_email,
            sender=settings.notification_sender,
        )

    @property
    def configured(self) -> bool:
        return bool(self._api_key and self._recipient)

    def build_subject(self, lead: Lead) -> str:
        prefix = '[HOT] ' if is_hot_lead(lead) else ''
        return f"{prefix}New Lead: {lead.user_name} ({lead.estimated_revenue or 'Revenue N/A'})"

    def build_html(self, lead: Lead, advisor: Advisor) -> str:
        score = calculate_lead_score(lead)
        esc = html.escape
        rows = [
            ('Name', esc(lead.user_name)),
            ('Email', f'<a href="mailto:{esc(lead.user_email)}">{esc(lead.user_email)}</a>'),
            ('Business Revenue', esc(lead.estimated_revenue or 'Not specified')),
            (
                'Working with Strategic CPA?',
                esc(CPA_STATUS_LABELS.get(lead.has_strategic_cpa or '', 'Not specified')),
            ),
            ('Interested in Captives/Reinsurance', 'Yes' if lead.interested_in_captives else 'No'),
        ]
        if lead.message:
            rows.append(('Message', f'&quot;{esc(lead.message)}&quot;'))

        row_html = '\n'.join(
            f'<tr><td style="padding: 8px 0;"><span style="color: #64748b;">{label}</span><br>'
            f'<strong>{value}</strong></td></tr>'
            for label, value in rows
        )
        return (
            '<!DOCTYPE html><html><head><meta charset="utf-8"></head>'
            '<body style="font-family: \'Segoe UI\', Tahoma, sans-serif;">'
            '<h1>New Lead Alert</h1><p>The Alpha Directory</p>'
            f'<p><strong>{score_label(score)}</strong> - Score: {score}/100</p>'
            f'<h2>Prospect Information</h2><table width="100%">{row_html}</table>'
            '<h2>Lead Submitted For</h2>'
            f'<p><strong>{esc(advisor.name)}</strong><br>'
            f'{esc(advisor.designation)} - {esc(advisor.city)}, {esc(advisor.state)}</p>'
            '<p style="color: #94a3b8;">The Alpha Directory - Strategic CPA &amp; Wealth Advisor Network</p>'
            '</body></html>'
        )

    def send_lead_notification(self, lead: Lead, advisor: Advisor) -> Tuple[bool, Optional[str]]:
        if not self._api_key:
            logger.warning('RESEND_API_KEY not configured, skipping notification')
            return False, 'Email not configured'
        if not self._recipient:
            logger.warning('NOTIFICATION_EMAIL not configured, skipping notification')
            return False, 'Notification email not configured'

        payload = {
            'from': self._sender,
            'to': self._recipient,
            'subject': self.build_subject(lead),
            'html': self.build_html(lead, advisor),
        }
        headers = {'Authorization': f'Bearer {self._api_key}'}
        try:
            with httpx.Client(transport=self._transport, timeout=10) as client:
                resp = client.post(RESEND_EMAILS_URL, json=payload, headers=headers)
                resp.raise_for_status()
                email_id = resp.json().get('id')
        except (httpx.HTTPError, ValueError) as exc:
            logger.error('Failed to send lead notification: %s', exc)
            return False, str(exc)

        logger.info('Lead notification sent: %s', email_id)
        return True, None
