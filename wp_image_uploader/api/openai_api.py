"""
OpenAI Vision API クライアント - 画像からSEOメタデータを生成
"""
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from ..security.input_validator import validator
from ..services.exceptions import OpenAIAPIError
from ..services.resource_manager import SessionMixin
from ..utils.constants import Constants

logger = logging.getLogger(__name__)


SYSTEM_PROMPT_TEMPLATE = (
    "You are an SEO assistant. Generate metadata for images in ENGLISH ONLY. "
    "All fields (filename, alt, title, caption, description, tags) must be in English. "
    "Never use Chinese or other languages. "
    "Use lowercase slugs for filenames (e.g., 'sunset-beach-waves.webp'). "
    "{context}"
    "Follow these guidelines:\n"
    "- filename: Use lowercase letters, hyphens, 3-5 words, descriptive, end with .webp (40-60 chars)\n"
    "- title: Concise, descriptive title (40-60 chars)\n"
    "- alt_text: Detailed description for accessibility (100-125 chars)\n"
    "- description: Longer description with context (150-200 chars)\n"
    "- tags: 5-8 relevant keywords (single words or short phrases)\n"
    "Return ONLY valid JSON in this exact format: "
    '{{"filename":"...","title":"...","description":"...","alt_text":"...","tags":["..."]}}'
)

USER_PROMPT = "Analyze this image and generate SEO metadata in English. Include a descriptive filename slug."

REQUIRED_FIELDS = ('filename', 'title', 'description', 'alt_text', 'tags')


@dataclass
class ImageAnalysis:
    """画像解析結果（メディアライブラリ用メタデータ）"""
    filename: str
    title: str
    description: str
    alt_text: str
    tags: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ImageAnalysis':
        """
        モデル出力の辞書から生成（サニタイズ込み）
        
        Raises:
            OpenAIAPIError: 必須項目が欠けている場合
        """
        if not isinstance(data, dict):
            raise OpenAIAPIError("Failed to parse analysis result: expected a JSON object")
        
        missing = [name for name in REQUIRED_FIELDS if name not in data]
        if missing:
            raise OpenAIAPIError(f"Failed to parse analysis result: missing field(s) {', '.join(missing)}")
        
        filename = validator.sanitize_slug_filename(data['filename'])
        if not filename:
            raise OpenAIAPIError(f"Failed to parse analysis result: unusable filename {data['filename']!r}")
        
        return cls(
            filename=filename,
            title=validator.sanitize_metadata_field('title', data['title']),
            description=validator.sanitize_metadata_field('description', data['description']),
            alt_text=validator.sanitize_metadata_field('alt_text', data['alt_text']),
            tags=validator.sanitize_tags(data['tags'])
        )


def build_system_prompt(context: Optional[str] = None) -> str:
    """サイトの文脈を含むシステムプロンプトを生成"""
    context_text = f"Website context: {context.strip()}. " if context and context.strip() else ""
    return SYSTEM_PROMPT_TEMPLATE.format(context=context_text)


def extract_json_content(content: str) -> str:
    """モデル出力からJSON部分を取り出す（markdownコードブロックを除去）"""
    if '```json' in content:
        body = content.split('```json', 1)[1]
        return body.split('```', 1)[0].strip()
    if '```' in content:
        parts = content.split('```')
        return parts[1].strip() if len(parts) > 1 else content.strip()
    return content.strip()


def parse_analysis(content: str) -> ImageAnalysis:
    """
    モデル出力テキストを解析結果に変換
    
    Raises:
        OpenAIAPIError: JSONとして解析できない場合
    """
    try:
        data = json.loads(extract_json_content(content))
    except ValueError as e:
        raise OpenAIAPIError(f"Failed to parse analysis result: {e}")
    return ImageAnalysis.from_dict(data)


class OpenAIAPI(SessionMixin):
    """OpenAI互換 REST API クライアント"""
    
    def __init__(
        self,
        api_key: str,
        api_url: str = Constants.OPENAI_DEFAULT_API_URL,
        model: str = Constants.OPENAI_VISION_MODEL,
        timeout: int = Constants.API_TIMEOUT
    ):
        """
        OpenAI APIクライアントの初期化
        
        Args:
            api_key: APIキー
            api_url: APIのベースURL（互換サーバーも可）
            model: 画像解析に使うモデル
            timeout: リクエストタイムアウト（秒）
        """
        super().__init__()
        self.api_url = (api_url or Constants.OPENAI_DEFAULT_API_URL).rstrip('/')
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
    
    def _configure_session(self, session: requests.Session) -> None:
        session.headers.update({
            'Authorization': f'Bearer {self.api_key}',
        })
    
    def validate_key(self) -> bool:
        """
        APIキーの有効性を確認（モデル一覧の取得）
        
        Returns:
            成功ステータスならTrue
        
        Raises:
            OpenAIAPIError: 通信に失敗した場合
        """
        try:
            response = self.session.get(f"{self.api_url}/models", timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error(f"OpenAI validation request failed: {e}")
            raise OpenAIAPIError(f"Request failed: {e}")
        
        if response.ok:
            logger.info(f"OpenAI API key validated against {self.api_url}")
        else:
            logger.warning(f"OpenAI API key rejected: HTTP {response.status_code}")
        return response.ok
    
    def analyze_image(
        self,
        image_base64: str,
        context: Optional[str] = None,
        mime_type: Optional[str] = None
    ) -> ImageAnalysis:
        """
        画像を解析してSEOメタデータを生成
        
        Args:
            image_base64: base64エンコードされた画像
            context: サイトの文脈（プロンプトに含める）
            mime_type: 画像のMIMEタイプ
        
        Returns:
            解析結果
        
        Raises:
            OpenAIAPIError: API呼び出し・解析に失敗した場合
        """
        payload = {
            'model': self.model,
            'messages': [
                {
                    'role': 'system',
                    'content': [{'type': 'text', 'text': build_system_prompt(context)}]
                },
                {
                    'role': 'user',
                    'content': [
                        {'type': 'text', 'text': USER_PROMPT},
                        {
                            'type': 'image_url',
                            'image_url': {'url': f"data:{mime_type or 'image/jpeg'};base64,{image_base64}"}
                        }
                    ]
                }
            ],
            'max_tokens': Constants.OPENAI_MAX_TOKENS,
        }
        
        try:
            response = self.session.post(
                f"{self.api_url}/chat/completions", json=payload, timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"OpenAI request failed: {e}")
            raise OpenAIAPIError(f"OpenAI request failed: {e}")
        
        if not response.ok:
            logger.error(f"OpenAI API error: HTTP {response.status_code}")
            raise OpenAIAPIError(f"OpenAI API error: {response.text}")
        
        try:
            body = response.json()
        except ValueError as e:
            raise OpenAIAPIError(f"Failed to parse OpenAI response: {e}")
        
        choices = (body.get('choices') if isinstance(body, dict) else None) or []
        if not choices:
            raise OpenAIAPIError("No response from OpenAI")
        
        content = (choices[0].get('message') or {}).get('content') or ''
        analysis = parse_analysis(content)
        logger.info(f"Generated metadata: {analysis.filename} ({len(analysis.tags)} tags)")
        return analysis
