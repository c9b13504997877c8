"""
Service d'envoi d'emails SMTP.
Utilisé pour le digest quotidien des nouvelles alertes critiques envoyé aux instructeurs.
"""

import logging
import smtplib
from datetime import date
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape
from typing import List

from app.config import settings
from app.schemas.alert import Alert

logger = logging.getLogger(__name__)


def _alert_row(alert: Alert) -> str:
    due = alert.due_date.strftime("%d/%m/%Y") if alert.due_date else "-"
    student = escape(f"{alert.student.first_name} {alert.student.last_name}".strip() or str(alert.student.id))
    return (
        "<tr>"
        f"<td style=\"padding: 4px 8px;\">{student}</td>"
        f"<td style=\"padding: 4px 8px;\">{escape(alert.message)}</td>"
        f"<td style=\"padding: 4px 8px;\">{escape(alert.details)}</td>"
        f"<td style=\"padding: 4px 8px;\">{due}</td>"
        "</tr>"
    )


def send_alert_digest_email(recipients: List[str], alerts: List[Alert], today: date) -> None:
    """
    Envoie un email HTML listant les nouvelles alertes critiques.
    Un seul message, tous les destinataires en copie. Lève une exception en cas d'échec SMTP.
    """
    msg = MIMEMultipart("alternative")
    msg["From"] = settings.SMTP_FROM
    msg["To"] = ", ".join(recipients)
    msg["Subject"] = (
        f"ClinicalTrack : {len(alerts)} nouvelle(s) alerte(s) critique(s) "
        f"au {today.strftime('%d/%m/%Y')}"
    )

    text_content = "\n".join(
        f"- {a.student.first_name} {a.student.last_name} : {a.message} ({a.details})" for a in alerts
    )

    html_content = f"""
    <html>
      <body style="font-family: Arial, sans-serif; color: #333; max-width: 700px; margin: auto;">
        <h2 style="color: #c62828;">ClinicalTrack : Alertes critiques</h2>
        <p>Bonjour,</p>
        <p>
          Les alertes suivantes sont devenues critiques depuis le dernier envoi
          ({today.strftime('%d/%m/%Y')}).
        </p>
        <table style="border-collapse: collapse; width: 100%; font-size: 14px;">
          <tr style="background: #f5f5f5; text-align: left;">
            <th style="padding: 4px 8px;">Étudiant</th>
            <th style="padding: 4px 8px;">Alerte</th>
            <th style="padding: 4px 8px;">Détails</th>
            <th style="padding: 4px 8px;">Échéance</th>
          </tr>
          {"".join(_alert_row(a) for a in alerts)}
        </table>
        <hr style="border: none; border-top: 1px solid #eee;" />
        <p style="font-size: 12px; color: #888;">
          Ce message est généré automatiquement par ClinicalTrack. Ne pas répondre à cet email.
        </p>
      </body>
    </html>
    """

    msg.attach(MIMEText(text_content, "plain", "utf-8"))
    msg.attach(MIMEText(html_content, "html", "utf-8"))

    # Connexion SMTP et envoi
    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT) as server:
        if settings.SMTP_USE_TLS:
            server.starttls()
        if settings.SMTP_USERNAME:
            server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
        server.send_message(msg)

    logger.info("Digest de %d alertes critiques envoyé à %d destinataires", len(alerts), len(recipients))
