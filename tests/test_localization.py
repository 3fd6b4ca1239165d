from whatshook.services.localization import format_contract_reply, get_message, resolve_language


class TestResolveLanguage:
    def test_tags(self):
        assert resolve_language("fr-FR") == "fr"
        assert resolve_language("ES") == "es"
        assert resolve_language("en_US") == "en"

    def test_unknown_falls_back(self):
        assert resolve_language("de") == "fr"
        assert resolve_language(None) == "fr"
        assert resolve_language("xx", default="es") == "es"


class TestMessages:
    def test_access_denied_spanish_text(self):
        assert get_message("access_denied", "es") == (
            "🚫 Lo siento, no tienes acceso autorizado a los datos de YOMP. "
            "Para obtener acceso, por favor contacta con tu administrador o equipo de soporte. "
            "📞 Gracias por tu comprensión."
        )

    def test_default_language_is_french(self):
        assert get_message("generic_error") == get_message("generic_error", "fr")

    def test_contract_reply(self):
        reply = format_contract_reply("W-123", "E-456", "en")
        assert "W-123" in reply
        assert "E-456" in reply
        assert reply.startswith("📄")

    def test_contract_reply_single_number(self):
        reply = format_contract_reply(None, "E-456", "es")
        assert "Electricidad: E-456" in reply
        assert "Agua" not in reply

    def test_nothing_found(self):
        assert format_contract_reply(None, None, "fr") == get_message("ocr_nothing_found", "fr")
