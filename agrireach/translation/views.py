# agrireach/translation/views.py
import requests
from flask import current_app
from agrireach.logging_config import setup_logging

logger = setup_logging()


class TranslationError(Exception):
    pass


class TranslationNotConfigured(TranslationError):
    pass


def _call(path, method='POST', payload=None, params=None):
    api_key = current_app.config.get('GOOGLE_TRANSLATION_API_KEY')
    if not api_key:
        raise TranslationNotConfigured('Translation service is not configured')

    url = current_app.config['TRANSLATION_API_URL'] + path
    query = dict(params or {}, key=api_key)
    try:
        response = requests.request(method, url, params=query, json=payload,
                                    timeout=current_app.config['TRANSLATION_TIMEOUT'])
        response.raise_for_status()
        return response.json()['data']
    except (requests.RequestException, ValueError, KeyError) as e:
        logger.error(f"Translation API error on {path or '/'}: {e}")
        raise TranslationError('Translation failed') from e


def translate_texts(texts, target_language, source_language=None):
    """Translate a list of strings in one upstream call, preserving order."""
    if not texts:
        return []
    payload = {'q': list(texts), 'target': target_language, 'format': 'text'}
    if source_language:
        payload['source'] = source_language
    data = _call('', payload=payload)
    try:
        translated = [item['translatedText'] for item in data['translations']]
    except (KeyError, TypeError) as e:
        raise TranslationError('Unexpected translation response') from e
    if len(translated) != len(texts):
        raise TranslationError('Unexpected translation response')
    return translated


def detect_language(text):
    data = _call('/detect', payload={'q': [text]})
    try:
        detection = data['detections'][0][0]
        return {'language': detection['language'], 'confidence': detection.get('confidence')}
    except (KeyError, IndexError, TypeError) as e:
        raise TranslationError('Unexpected detection response') from e


def get_supported_languages(display_language='en'):
    data = _call('/languages', method='GET', params={'target': display_language})
    try:
        return [{'code': item['language'], 'name': item.get('name', item['language'])}
                for item in data['languages']]
    except (KeyError, TypeError) as e:
        raise TranslationError('Unexpected languages response') from e
