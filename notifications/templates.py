"""
Email bodies for the account flows.

Each builder returns ``(subject, html, text)``.
"""

from __future__ import annotations

import html
from datetime import datetime, timezone
from typing import Tuple

_LAYOUT = """<!DOCTYPE html>
<html>
  <head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{title}</title>
  </head>
  <body style="margin: 0; padding: 0; background-color: #f5f7fa; font-family: Arial, sans-serif;">
    <table role="presentation" style="width: 100%; max-width: 600px; margin: 20px auto; background-color: #ffffff; border-radius: 12px;">
      <tr>
        <td style="background-color: #042330; padding: 40px 30px; text-align: center;">
          <h1 style="margin: 0; color: #b5c5d3; font-size: 28px;">{heading}</h1>
        </td>
      </tr>
      <tr>
        <td style="padding: 40px 30px;">
          <h2 style="margin: 0 0 20px 0; color: #042330; font-size: 24px;">{title}</h2>
          <p style="margin: 0 0 30px 0; color: #97afbd; font-size: 16px;">{intro}</p>
          <p style="text-align: center;">
            <a href="{url}" style="display: inline-block; background-color: #042330; color: #b5c5d3; padding: 16px 40px; text-decoration: none; border-radius: 8px;">{button}</a>
          </p>
          <p style="color: #97afbd; font-size: 14px;">Or copy and paste this link into your browser:</p>
          <p style="color: #042330; font-size: 12px; font-family: 'Courier New', monospace; word-break: break-all;">{url}</p>
          <p style="margin-top: 30px; color: #97afbd; font-size: 13px; border-top: 1px solid #e9ecef; padding-top: 20px;">{notice}</p>
        </td>
      </tr>
      <tr>
        <td style="background-color: #f8f9fa; padding: 20px 30px; text-align: center;">
          <p style="margin: 0; color: #97afbd; font-size: 12px;">&copy; {year} {brand}. All rights reserved.</p>
        </td>
      </tr>
    </table>
  </body>
</html>
"""


def _render(*, brand: str, heading: str, title: str, intro: str, button: str, url: str, notice: str) -> str:
    return _LAYOUT.format(
        brand=html.escape(brand),
        heading=html.escape(heading),
        title=html.escape(title),
        intro=html.escape(intro),
        button=html.escape(button),
        url=html.escape(url, quote=True),
        notice=html.escape(notice),
        year=datetime.now(timezone.utc).year,
    )


def verification_email(url: str, brand: str) -> Tuple[str, str, str]:
    intro = "Thank you for registering with us! Please verify your email address by clicking the button below:"
    notice = (
        "This link will expire in 24 hours. If you didn't create an account, "
        "you can safely ignore this email."
    )
    body = _render(
        brand=brand,
        heading=f"Welcome to {brand}",
        title="Email Verification",
        intro=intro,
        button="Verify Email Address",
        url=url,
        notice=notice,
    )
    text = f"Welcome to {brand}!\n\n{intro}\n\n{url}\n\n{notice}\n\nBest regards,\n{brand} Team"
    return "Verify your email address", body, text


def password_reset_email(url: str, brand: str) -> Tuple[str, str, str]:
    intro = "We received a request to reset your password. Click the button below to create a new password:"
    notice = (
        "This link will expire in 1 hour. If you didn't request a password reset, "
        "you can safely ignore this email and your password will remain unchanged."
    )
    body = _render(
        brand=brand,
        heading="Password Reset Request",
        title="Reset Your Password",
        intro=intro,
        button="Reset Password",
        url=url,
        notice=notice,
    )
    text = f"Password Reset Request\n\n{intro}\n\n{url}\n\n{notice}\n\nBest regards,\n{brand} Team"
    return "Reset your password", body, text
