"""
Token 签发与校验
---------------------------------
功能：
- 签发访问 Token（短期）与刷新 Token（长期），两者使用独立密钥与有效期
- 校验签名、过期时间与 Token 类型，失败统一抛出 401 类错误
- Token 不在服务端落库，有效性只取决于签名与 exp

使用：
- 登录/注册：issuer.issue_pair(user.id)
- 鉴权：issuer.verify_access(token)
- 刷新：issuer.verify_refresh(refresh_token) 后再 issue_access
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from uuid import uuid4

from jose import ExpiredSignatureError, JWTError, jwt

from ..config.settings import Settings
from ..utils.errors import TokenExpiredError, UnauthorizedError

ACCESS = "access"
REFRESH = "refresh"


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str

    def to_dict(self) -> dict:
        return {"accessToken": self.access_token, "refreshToken": self.refresh_token}


class TokenIssuer:
    """按配置签发/校验 JWT"""

    def __init__(self, settings: Settings):
        self.algorithm = settings.jwt_algorithm
        self.access_secret = settings.jwt_secret
        self.refresh_secret = settings.refresh_secret
        self.access_ttl = timedelta(minutes=settings.jwt_access_expire_minutes)
        self.refresh_ttl = timedelta(days=settings.jwt_refresh_expire_days)

    def _sign(self, user_id: str, token_type: str, secret: str, ttl: timedelta) -> str:
        now = datetime.utcnow()
        to_encode = {
            "id": user_id,
            "type": token_type,
            # jti 保证同一用户同一秒内签发的两个 Token 也不相同
            "jti": uuid4().hex,
            "iat": now,
            "exp": now + ttl,
        }
        return jwt.encode(to_encode, secret, algorithm=self.algorithm)

    def issue_access(self, user_id: str) -> str:
        return self._sign(user_id, ACCESS, self.access_secret, self.access_ttl)

    def issue_refresh(self, user_id: str) -> str:
        return self._sign(user_id, REFRESH, self.refresh_secret, self.refresh_ttl)

    def issue_pair(self, user_id: str) -> TokenPair:
        return TokenPair(self.issue_access(user_id), self.issue_refresh(user_id))

    def verify(self, token: str, secret: str, expected_type: str) -> str:
        """
        解码并验证 JWT Token

        Args:
            token: JWT Token 字符串
            secret: 签名密钥
            expected_type: 期望的 Token 类型（access / refresh）

        Returns:
            Token 中的用户 ID

        Raises:
            TokenExpiredError: 已过期
            UnauthorizedError: 签名错误、格式错误、类型不符或缺少用户 ID
        """
        if not token:
            raise UnauthorizedError("缺少认证凭证")
        try:
            payload = jwt.decode(token, secret, algorithms=[self.algorithm])
        except ExpiredSignatureError:
            raise TokenExpiredError()
        except JWTError:
            raise UnauthorizedError("无效的认证凭证")

        if payload.get("type") != expected_type:
            raise UnauthorizedError("Token 类型错误")
        user_id = payload.get("id")
        if not user_id:
            raise UnauthorizedError("Token 格式错误")
        return user_id

    def verify_access(self, token: str) -> str:
        return self.verify(token, self.access_secret, ACCESS)

    def verify_refresh(self, token: str) -> str:
        return self.verify(token, self.refresh_secret, REFRESH)
