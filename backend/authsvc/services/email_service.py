# -*- coding: utf-8 -*-
"""
邮件发送服务（SMTP）
---------------------------------
功能：
- 通过 SMTP 发送 HTML + 纯文本双版本邮件；
- 发送在线程池中执行，不阻塞事件循环；
- 提供找回密码验证码邮件模板。

使用说明：
- 由 `main.create_app` 按配置构造一次，挂在 `app.state.mailer`；
- 测试中可替换为任意实现了 `send_otp` 的对象。
"""
from __future__ import annotations

import html
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr

from bs4 import BeautifulSoup
from fastapi.concurrency import run_in_threadpool

from ..config.settings import Settings
from ..models.user import User
from ..utils.errors import MailDeliveryError
from ..utils.logger import log

_OTP_TEMPLATE = """\
<div style="font-family: Arial, sans-serif; max-width: 480px;">
  <h2>{subject}</h2>
  <p>{greeting}，</p>
  <p>你正在重置账号密码，本次验证码为：</p>
  <p style="font-size: 28px; font-weight: bold; letter-spacing: 6px;">{otp}</p>
  <p>验证码 {minutes} 分钟内有效。如非本人操作，请忽略本邮件。</p>
</div>
"""


def html_to_text(body: str) -> str:
    """将简单 HTML 转为纯文本，用作邮件的 text/plain 版本。"""
    return BeautifulSoup(body, "html.parser").get_text("\n", strip=True)


class Mailer:
    """SMTP 发信"""

    def __init__(self, settings: Settings):
        self.host = settings.smtp_host
        self.port = settings.smtp_port
        self.username = settings.smtp_username
        self.password = settings.smtp_password
        self.use_tls = settings.smtp_use_tls
        self.sender = formataddr((settings.mail_sender_name, settings.email_from))

    def _build_message(self, to: str, subject: str, body_html: str) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = to
        msg.attach(MIMEText(html_to_text(body_html), "plain", "utf-8"))
        msg.attach(MIMEText(body_html, "html", "utf-8"))
        return msg

    def _deliver(self, msg: MIMEMultipart) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=15) as server:
            if self.use_tls:
                server.starttls()
            server.login(self.username, self.password)
            server.send_message(msg)

    async def send(self, to: str, subject: str, body_html: str) -> None:
        """发送邮件，失败时记录日志并抛出 MailDeliveryError。"""
        msg = self._build_message(to, subject, body_html)
        try:
            await run_in_threadpool(self._deliver, msg)
        except (smtplib.SMTPException, OSError) as e:
            log.error(f"邮件发送失败：{e}")
            raise MailDeliveryError() from e
        log.info(f"邮件已发送：{subject}")

    async def send_otp(self, user: User, otp: str, expire_minutes: int) -> None:
        subject = "密码重置验证码"
        body = _OTP_TEMPLATE.format(
            subject=subject,
            greeting=html.escape(user.fullname or "你好"),
            otp=otp,
            minutes=expire_minutes,
        )
        await self.send(user.email, subject, body)
