"""
入力検証・サニタイゼーション - AI生成メタデータとサイトURL
"""
import html
import logging
import re
from typing import Any, List, Optional
from urllib.parse import urlparse

import bleach

logger = logging.getLogger(__name__)


class InputValidator:
    """入力検証・サニタイゼーションシステム"""
    
    # メディアのメタデータ項目ごとの最大長
    FIELD_LIMITS = {
        'title': 200,
        'alt_text': 300,
        'description': 1000,
    }
    MAX_TAGS = 20
    MAX_TAG_LENGTH = 50
    MAX_FILENAME_LENGTH = 120
    
    def sanitize_text_field(self, text: Any, max_length: int = 500) -> str:
        """テキストフィールドのサニタイゼーション（HTMLは全て除去）"""
        if not text:
            return ""
        
        text_str = bleach.clean(str(text), tags=[], attributes={}, strip=True)
        # bleach はエンティティをエスケープするので戻す
        text_str = html.unescape(text_str)
        
        # 制御文字の除去
        text_str = re.sub(r'[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]', '', text_str)
        text_str = ' '.join(text_str.split())
        
        if len(text_str) > max_length:
            text_str = text_str[:max_length]
        
        return text_str
    
    def sanitize_metadata_field(self, name: str, value: Any) -> str:
        """メディアメタデータ項目をサニタイズ"""
        return self.sanitize_text_field(value, max_length=self.FIELD_LIMITS.get(name, 500))
    
    def sanitize_tags(self, tags: Any) -> List[str]:
        """タグリストの検証（重複除去・件数制限）"""
        if not tags or not isinstance(tags, (list, tuple)):
            return []
        
        validated_tags = []
        for tag in tags[:self.MAX_TAGS]:
            sanitized_tag = self.sanitize_text_field(tag, max_length=self.MAX_TAG_LENGTH)
            if sanitized_tag and sanitized_tag not in validated_tags:
                validated_tags.append(sanitized_tag)
        
        return validated_tags
    
    def sanitize_slug_filename(self, filename: Any, default_extension: str = '.webp') -> Optional[str]:
        """
        AIが提案したファイル名を小文字スラッグに正規化
        
        Returns:
            正規化されたファイル名、使えない場合はNone
        """
        if not filename:
            return None
        
        name = str(filename).strip().lower()
        stem, dot, extension = name.rpartition('.')
        if not dot:
            stem, extension = name, default_extension.lstrip('.')
        
        stem = re.sub(r'[^a-z0-9]+', '-', stem).strip('-')
        extension = re.sub(r'[^a-z0-9]', '', extension) or default_extension.lstrip('.')
        if not stem:
            return None
        
        max_stem = self.MAX_FILENAME_LENGTH - len(extension) - 1
        return f"{stem[:max_stem].rstrip('-')}.{extension}"
    
    def is_valid_site_url(self, url: Any) -> bool:
        """WordPressサイトURLとして使えるか（http/https とホスト名）"""
        if not url:
            return False
        
        try:
            parsed = urlparse(str(url).strip())
        except ValueError:
            return False
        
        if parsed.scheme not in ('http', 'https'):
            logger.warning(f"不正なURLです: {url}")
            return False
        return bool(parsed.netloc)


# グローバルバリデーターインスタンス
validator = InputValidator()
