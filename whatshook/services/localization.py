"""User-facing texts. A received message never goes unanswered, so every
failure path has an apology in the sender's language."""

from typing import Optional

DEFAULT_LANGUAGE = "fr"
SUPPORTED_LANGUAGES = ("fr", "es", "en")

MESSAGES = {
    "generic_error": {
        "fr": "Désolé, je n'ai pas pu traiter votre message. Veuillez réessayer dans quelques instants.",
        "es": "Lo siento, no pude procesar tu mensaje. Por favor, inténtalo de nuevo en unos momentos.",
        "en": "Sorry, I couldn't process your message. Please try again in a moment.",
    },
    "voice_error": {
        "fr": "Désolé, je n'ai pas pu comprendre votre message vocal. Pouvez-vous le renvoyer ou l'écrire ?",
        "es": "Lo siento, no pude entender tu mensaje de voz. ¿Puedes enviarlo de nuevo o escribirlo?",
        "en": "Sorry, I couldn't understand your voice message. Could you resend it or type it?",
    },
    "image_error": {
        "fr": "Désolé, je n'ai pas pu lire votre image. Envoyez une photo nette de votre facture.",
        "es": "Lo siento, no pude leer tu imagen. Envía una foto nítida de tu factura.",
        "en": "Sorry, I couldn't read your image. Please send a clear photo of your invoice.",
    },
    "unsupported_media": {
        "fr": "Ce type de fichier n'est pas pris en charge. Envoyez un texte, une note vocale ou une image.",
        "es": "Este tipo de archivo no es compatible. Envía un texto, una nota de voz o una imagen.",
        "en": "This file type is not supported. Please send text, a voice note or an image.",
    },
    "access_denied": {
        "fr": "🚫 Désolé, vous n'avez pas d'accès autorisé. Contactez votre administrateur ou l'équipe de support. 📞 Merci de votre compréhension.",
        "es": "🚫 Lo siento, no tienes acceso autorizado a los datos de YOMP. "
        "Para obtener acceso, por favor contacta con tu administrador o equipo de soporte. "
        "📞 Gracias por tu comprensión.",
        "en": "🚫 Sorry, you are not authorized to access this service. Please contact your administrator or support team. 📞 Thank you for your understanding.",
    },
    "ocr_header": {
        "fr": "📄 Numéros de contrat trouvés :",
        "es": "📄 Números de contrato encontrados:",
        "en": "📄 Contract numbers found:",
    },
    "ocr_water": {
        "fr": "💧 Eau : {value}",
        "es": "💧 Agua: {value}",
        "en": "💧 Water: {value}",
    },
    "ocr_electricity": {
        "fr": "⚡ Électricité : {value}",
        "es": "⚡ Electricidad: {value}",
        "en": "⚡ Electricity: {value}",
    },
    "ocr_nothing_found": {
        "fr": "Je n'ai trouvé aucun numéro de contrat sur cette image. Essayez avec une photo plus nette de la facture.",
        "es": "No encontré ningún número de contrato en esta imagen. Prueba con una foto más nítida de la factura.",
        "en": "I couldn't find any contract number in this image. Try a sharper photo of the invoice.",
    },
}


def resolve_language(code: Optional[str], default: str = DEFAULT_LANGUAGE) -> str:
    """Map a language tag (``fr-FR``, ``ES``, ``en_US``) to a supported code."""
    if not code:
        return default
    primary = code.strip().lower().replace("_", "-").split("-")[0]
    return primary if primary in SUPPORTED_LANGUAGES else default


def get_message(key: str, language: Optional[str] = None, **kwargs) -> str:
    texts = MESSAGES[key]
    text = texts.get(resolve_language(language), texts[DEFAULT_LANGUAGE])
    return text.format(**kwargs) if kwargs else text


def format_contract_reply(
    water_contract: Optional[str], electricity_contract: Optional[str], language: Optional[str] = None
) -> str:
    if not water_contract and not electricity_contract:
        return get_message("ocr_nothing_found", language)

    lines = [get_message("ocr_header", language)]
    if water_contract:
        lines.append(get_message("ocr_water", language, value=water_contract))
    if electricity_contract:
        lines.append(get_message("ocr_electricity", language, value=electricity_contract))
    return "\n".join(lines)
