"""
找回密码流程（OTP + 重置凭证）
---------------------------------
功能：
- send_otp：生成 6 位数字验证码，只保存其 sha256 与过期时间，明文通过邮件发送；
  邮箱不存在时返回相同结果且不写库；邮件可交给 BackgroundTasks 在响应后发送，
  发送失败只记日志，响应与耗时都不因账号是否存在而不同，避免账号枚举
- verify_otp：校验验证码，通过后签发一次性重置凭证（40 位十六进制），
  同一字段改存凭证的 sha256，并重新计算过期时间；写入为条件 UPDATE，验证码只能成功使用一次
- reset_password：凭重置凭证设置新密码，清空找回密码状态并重新签发 Token

状态流转：
    空闲 → 已发送验证码 → 待重置（已签发凭证）→ 空闲
"""

import hashlib
import hmac
import secrets
from datetime import datetime, timedelta
from typing import Callable, Optional, Tuple

from fastapi import BackgroundTasks

from ..config.settings import Settings
from ..models.user import User
from ..utils.errors import InvalidOTPError, InvalidResetTicketError, MailDeliveryError, ValidationError
from ..utils.logger import log
from .token_service import TokenIssuer, TokenPair
from .user_store import UserStore

OTP_MIN = 100000
OTP_MAX = 999999
RESET_TICKET_BYTES = 20
MIN_PASSWORD_LENGTH = 6


def sha256_hex(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def generate_otp() -> str:
    """在 [100000, 999999] 内均匀生成验证码"""
    return str(OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1))


class PasswordResetFlow:

    def __init__(
        self,
        store: UserStore,
        issuer: TokenIssuer,
        mailer,
        settings: Settings,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.store = store
        self.issuer = issuer
        self.mailer = mailer
        self.otp_ttl = timedelta(minutes=settings.otp_expire_minutes)
        self.ticket_ttl = timedelta(minutes=settings.reset_ticket_expire_minutes)
        self.clock = clock

    async def send_otp(self, email: str, background: Optional[BackgroundTasks] = None) -> None:
        user = await self.store.find_by_email(email)
        if user is None:
            log.info("找回密码：邮箱未注册，忽略")
            return

        otp = generate_otp()
        user.reset_otp_hash = sha256_hex(otp)
        user.reset_otp_expires = self.clock() + self.otp_ttl
        user.reset_ticket_issued = False
        await self.store.persist_user(user)

        if background is None:
            await self._deliver_otp(user, otp)
        else:
            background.add_task(self._deliver_otp, user, otp)

    async def _deliver_otp(self, user: User, otp: str) -> None:
        try:
            await self.mailer.send_otp(user, otp, int(self.otp_ttl.total_seconds() // 60))
        except MailDeliveryError:
            log.error(f"找回密码验证码发送失败：用户 {user.id}")
            return
        log.info(f"找回密码验证码已发送：用户 {user.id}")

    async def verify_otp(self, email: str, otp: str) -> str:
        """
        校验验证码并签发重置凭证

        Returns:
            明文重置凭证（只返回这一次）

        Raises:
            InvalidOTPError: 用户不存在、无待验证码、验证码错误、已过期或已被使用
        """
        user = await self.store.find_by_email(email)
        if user is None or not user.reset_otp_hash or user.reset_ticket_issued:
            raise InvalidOTPError()
        if not hmac.compare_digest(user.reset_otp_hash, sha256_hex((otp or "").strip())):
            raise InvalidOTPError()
        if user.reset_otp_expires is None or user.reset_otp_expires < self.clock():
            raise InvalidOTPError()

        ticket = secrets.token_hex(RESET_TICKET_BYTES)
        issued = await self.store.issue_reset_ticket(
            user, user.reset_otp_hash, sha256_hex(ticket), self.clock() + self.ticket_ttl
        )
        if not issued:
            raise InvalidOTPError()

        log.info(f"验证码校验通过，已签发重置凭证：用户 {user.id}")
        return ticket

    async def reset_password(
        self, ticket: str, new_password: str, confirm_password: str
    ) -> Tuple[User, TokenPair]:
        if not new_password or new_password != confirm_password:
            raise ValidationError("两次输入的密码不一致或新密码为空")
        if len(new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"密码长度至少 {MIN_PASSWORD_LENGTH} 位")
        if not ticket:
            raise InvalidResetTicketError()

        user = await self.store.find_by_reset_ticket(sha256_hex(ticket))
        if user is None:
            raise InvalidResetTicketError()
        if user.reset_otp_expires is None or user.reset_otp_expires < self.clock():
            user.clear_reset_state()
            await self.store.persist_user(user)
            raise InvalidResetTicketError()

        await self.store.persist_user(user, raw_password=new_password)
        log.info(f"密码已重置：用户 {user.id}")
        return user, self.issuer.issue_pair(user.id)
