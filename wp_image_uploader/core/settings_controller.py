"""
設定画面のコントローラー - OpenAI認証情報とWordPressサイトのCRUD
"""
import logging
from dataclasses import replace
from typing import Callable, List, Optional

from ..config.config_manager import AppConfig, OpenAIConfig, WordPressSite
from ..security.input_validator import validator
from ..services.exceptions import CommandError
from ..utils.constants import Constants, ImageDefaults, Messages
from ..utils.utils import generate_id
from .bridge import Bridge

logger = logging.getLogger(__name__)


def clamp(value: int, minimum: int, maximum: int) -> int:
    return max(minimum, min(maximum, value))


class SettingsController:
    """設定の編集状態を保持し、検証と保存をブリッジへ委譲"""

    def __init__(
        self,
        bridge: Bridge,
        config: AppConfig,
        on_config_update: Optional[Callable[[AppConfig], None]] = None
    ):
        """
        Args:
            bridge: コマンドブリッジ
            config: 現在の設定
            on_config_update: 設定保存後に呼ばれるコールバック
        """
        self.bridge = bridge
        self.config = config
        self.on_config_update = on_config_update

        self.openai_url = config.openai.api_url if config.openai else Constants.OPENAI_DEFAULT_API_URL
        self.openai_key = config.openai.api_key if config.openai else ""
        self.validating_openai = False
        self.openai_valid: Optional[bool] = None

        self.sites: List[WordPressSite] = list(config.wordpress_sites)
        self.editing_site_id: Optional[str] = None
        self.editing_site: Optional[WordPressSite] = None
        self.new_site: Optional[WordPressSite] = None

        self.saving = False
        self.message = ""

    def _set_message(self, message: str) -> None:
        self.message = message
        logger.info(message)

    def _openai_from_form(self, fallback: Optional[OpenAIConfig]) -> Optional[OpenAIConfig]:
        """キーが入力されていればフォームの値、なければ既存設定"""
        if self.openai_key.strip():
            return OpenAIConfig(api_url=self.openai_url.strip(), api_key=self.openai_key.strip())
        return fallback

    def _persist(self, config: AppConfig) -> None:
        self.bridge.save_config(config)
        self.config = config
        if self.on_config_update:
            self.on_config_update(config)

    def validate_openai(self) -> bool:
        """
        OpenAI APIキーを検証し、成功時は自動保存

        Returns:
            検証に成功したか
        """
        if not self.openai_key.strip():
            self._set_message(Messages.ENTER_API_KEY)
            return False

        self.validating_openai = True
        self.openai_valid = None
        try:
            is_valid = self.bridge.validate_openai(self.openai_url, self.openai_key)
            self.openai_valid = is_valid

            if is_valid:
                new_config = replace(
                    self.config,
                    openai=OpenAIConfig(api_url=self.openai_url.strip(), api_key=self.openai_key.strip()),
                    wordpress_sites=list(self.sites)
                )
                self._persist(new_config)
                self._set_message(Messages.OPENAI_SAVED)
            else:
                self._set_message(Messages.OPENAI_INVALID)
            return is_valid
        except CommandError as e:
            self.openai_valid = False
            self._set_message(Messages.VALIDATION_ERROR.format(e))
            return False
        finally:
            self.validating_openai = False

    def add_site(self) -> WordPressSite:
        """新規サイトの入力フォームを開く（編集フォームは閉じる）"""
        self.editing_site_id = None
        self.editing_site = None
        self.new_site = WordPressSite(
            id=generate_id(),
            site_url="",
            username="",
            app_password="",
            context="",
            convert_to_webp=ImageDefaults.CONVERT_TO_WEBP,
            quality=ImageDefaults.QUALITY,
            max_width=ImageDefaults.MAX_WIDTH
        )
        return self.new_site

    def edit_site(self, site_id: str) -> Optional[WordPressSite]:
        """既存サイトの編集フォームを開く（新規フォームは閉じる）"""
        for site in self.sites:
            if site.id == site_id:
                self.editing_site_id = site.id
                self.editing_site = replace(site)
                self.new_site = None
                return self.editing_site
        return None

    def cancel_edit(self) -> None:
        self.editing_site_id = None
        self.editing_site = None

    def cancel_new_site(self) -> None:
        self.new_site = None

    def _normalize_site(self, site: WordPressSite) -> WordPressSite:
        """入力値を整形（品質と幅は範囲内に収める）"""
        return replace(
            site,
            site_url=site.site_url.strip(),
            username=site.username.strip(),
            app_password=site.app_password.strip(),
            context=site.context.strip() if site.context else site.context,
            quality=clamp(site.quality, ImageDefaults.MIN_QUALITY, ImageDefaults.MAX_QUALITY)
            if site.quality is not None else None,
            max_width=clamp(site.max_width, ImageDefaults.MIN_WIDTH, ImageDefaults.MAX_WIDTH_LIMIT)
            if site.max_width is not None else None
        )

    def _validate_and_store_site(self, site: Optional[WordPressSite], replace_id: Optional[str]) -> bool:
        """サイトを検証し、成功時は一覧を更新して自動保存"""
        if site is None or not site.site_url or not site.username or not site.app_password:
            self._set_message(Messages.REQUIRED_FIELDS)
            return False

        if not validator.is_valid_site_url(site.site_url):
            self._set_message(Messages.VALIDATION_ERROR.format(f"invalid site URL: {site.site_url}"))
            return False

        self._set_message(Messages.VALIDATING_SITE)
        self.saving = True
        try:
            site = self._normalize_site(site)
            is_valid = self.bridge.validate_wordpress(site.site_url, site.username, site.app_password)
            if not is_valid:
                self._set_message(Messages.SITE_INVALID)
                return False

            if replace_id is None:
                new_sites = self.sites + [site]
            else:
                new_sites = [site if s.id == replace_id else s for s in self.sites]
            self.sites = new_sites

            new_config = replace(
                self.config,
                openai=self._openai_from_form(self.config.openai),
                wordpress_sites=list(new_sites)
            )
            self._persist(new_config)
            self._set_message(Messages.SITE_SAVED)
            return True
        except CommandError as e:
            self._set_message(Messages.VALIDATION_ERROR.format(e))
            return False
        finally:
            self.saving = False

    def save_new_site(self) -> bool:
        """新規サイトを検証して追加"""
        if self._validate_and_store_site(self.new_site, replace_id=None):
            self.new_site = None
            return True
        return False

    def save_edit(self) -> bool:
        """編集中のサイトを検証して更新"""
        if self.editing_site is None or self.editing_site_id is None:
            return False
        if self._validate_and_store_site(self.editing_site, replace_id=self.editing_site_id):
            self.cancel_edit()
            return True
        return False

    def delete_site(self, site_id: str) -> None:
        """サイトを一覧から削除（保存は save_config で行う）"""
        self.sites = [site for site in self.sites if site.id != site_id]
        self._set_message(Messages.SITE_REMOVED)

    def save_config(self) -> bool:
        """現在の編集状態をそのまま保存"""
        self.saving = True
        try:
            new_config = replace(
                self.config,
                openai=self._openai_from_form(self.config.openai),
                wordpress_sites=list(self.sites)
            )
            self._persist(new_config)
            self._set_message(Messages.CONFIG_SAVED)
            return True
        except CommandError as e:
            self._set_message(Messages.SAVE_ERROR.format(e))
            return False
        finally:
            self.saving = False
