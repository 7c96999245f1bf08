# agrireach/translation/routes.py
from flask import Blueprint, request
from agrireach.api import json_ok, json_error, request_data
from agrireach.logging_config import setup_logging
from agrireach.translation.views import (TranslationError, TranslationNotConfigured, translate_texts,
                                         detect_language, get_supported_languages)

translation_bp = Blueprint('translation', __name__)

logger = setup_logging()


def upstream_error(e):
    if isinstance(e, TranslationNotConfigured):
        return json_error(str(e), 503)
    return json_error('Translation failed', 502)


@translation_bp.route('', methods=['POST'])
def translate():
    data = request_data()
    if not isinstance(data, dict):
        return json_error('Invalid payload', 400)
    text = data.get('text')
    texts = data.get('texts')
    target_language = data.get('targetLanguage')

    if not target_language:
        return json_error('Missing target language', 400)
    if texts is not None and not isinstance(texts, list):
        return json_error('texts must be a list', 400)
    if texts is None and not text:
        return json_error('Missing text or texts', 400)

    # English is the source language of the content
    if target_language == 'en':
        if texts is not None:
            return json_ok({'translations': texts, 'targetLanguage': target_language})
        return json_ok({'translatedText': text, 'originalText': text, 'targetLanguage': target_language})

    try:
        if texts is not None:
            return json_ok({'translations': translate_texts(texts, target_language, data.get('sourceLanguage')),
                            'targetLanguage': target_language})
        translated = translate_texts([text], target_language, data.get('sourceLanguage'))[0]
    except TranslationError as e:
        return upstream_error(e)

    return json_ok({'translatedText': translated, 'originalText': text, 'targetLanguage': target_language})


@translation_bp.route('/detect', methods=['POST'])
def detect():
    data = request_data()
    text = data.get('text') if isinstance(data, dict) else None
    if not text:
        return json_error('Missing required field: text', 400)

    try:
        detected = detect_language(text)
    except TranslationError as e:
        return upstream_error(e)
    return json_ok({'text': text, 'detectedLanguage': detected['language'], 'confidence': detected['confidence']})


@translation_bp.route('/languages', methods=['GET'])
def languages():
    try:
        supported = get_supported_languages(request.args.get('display', 'en'))
    except TranslationError as e:
        return upstream_error(e)
    return json_ok({'languages': supported})
