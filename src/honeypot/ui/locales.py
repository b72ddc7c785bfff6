"""Localized strings for the warning message and the user DM.

``STRINGS`` maps a locale tag to a partial record of named templates. Every
record is merged over the ``en`` record, so a locale only has to provide the
strings it translates. Lookup goes tag -> base language -> configured
default locale -> ``en`` and never raises.

Template tokens: ``{{action:text}}``, ``{{guild:name}}``, ``{{message:link}}``,
``{{user:ping}}``, ``{{honeypot:channel:ping}}``, ``{{count}}``.
"""

from __future__ import annotations

from typing import Dict, Iterator, Optional

from honeypot.configuration.app_configuration import app_config

DEFAULT_LOCALE = "en"

LocaleStrings = Dict[str, str]

STRINGS: Dict[str, LocaleStrings] = {
    "en": {
        "ban_action_full": "an immediate ban",
        "ban_action_short": "Bans",
        "banned_action_short": "Banned",
        "softban_action_full": "a softban",
        "softban_action_short": "Kicks",
        "softbanned_action_short": "Kicked",
        "disabled_action_full": "no action (honeypot is disabled)",
        "disabled_action_short": "Triggers",

        "warning_message": "## DO NOT SEND MESSAGES IN THIS CHANNEL\n\nThis channel is used to catch spam bots. Any messages sent here will result in {{action:text}}.",

        "dm_intro": "## Honeypot Triggered\n\nYou have been **{{action:text}}** from {{guild:name}} for sending a message in the [honeypot]({{message:link}}) channel.",
        "dm_footer": "-# This is an automated message. Replies are not monitored.",
        "dm_owner": "-# This is an example message: as the owner you can't be {{action:text}}.",

        "banned_log_text": "banned",
        "softbanned_log_text": "softbanned",
        "disabled_log_text": "not moderated",

        "log_success": "{{user:ping}} was {{action:text}} for triggering the honeypot in {{honeypot:channel:ping}}.",
        "log_owner_exempt": (
            "⚠️ {{user:ping}} triggered the honeypot in {{honeypot:channel:ping}}, but is the server owner, "
            "so no action was taken. Owners can never be moderated by a bot; to test the honeypot, use "
            "an account below my highest role."
        ),
        "log_failed": (
            "⚠️ {{user:ping}} triggered the honeypot in {{honeypot:channel:ping}}, but I **failed** to "
            "moderate them. Make sure my role is above theirs and that I have the **Ban Members** permission."
        ),
        "setup_instructions": (
            "👋 Thanks for adding the honeypot bot! Please run `/honeypot` to finish setup.\n"
            "-# The bot couldn't create or send the warning message automatically."
        ),
        "log_channel_confirmation": "✅ Honeypot events for {{honeypot:channel:ping}} will be logged here.",
    },

    "id": {
        "ban_action_full": "pemblokiran permanen",
        "ban_action_short": "Blokir",
        "banned_action_short": "Diblokir",
        "softban_action_full": "pengusiran sementara",
        "softban_action_short": "Tendang",
        "softbanned_action_short": "Ditendang",
        "disabled_action_full": "tanpa tindakan (honeypot dinonaktifkan)",
        "disabled_action_short": "Memicu",
        "warning_message": "## JANGAN KIRIM PESAN DI SALURAN INI\n\nSaluran ini digunakan untuk menangkap bot spam. Pesan yang dikirim di sini akan berakibat {{action:text}}.",
        "dm_intro": "## Honeypot Aktif\n\nAnda telah **{{action:text}}** dari {{guild:name}} karena mengirim pesan di saluran [honeypot]({{message:link}}).",
        "dm_footer": "-# Ini pesan otomatis. Balasan tidak dipantau.",
        "dm_owner": "-# Ini pesan contoh: sebagai pemilik Anda tidak bisa {{action:text}}.",
    },

    "da": {
        "ban_action_full": "en øjeblikkelig udelukkelse",
        "ban_action_short": "Udelukker",
        "banned_action_short": "Udelukket",
        "softban_action_full": "en midlertidig udsmidning",
        "softban_action_short": "Sparker",
        "softbanned_action_short": "Sparket",
        "disabled_action_full": "ingen handling (honeypot er deaktiveret)",
        "disabled_action_short": "Udløser",
        "warning_message": "## SEND IKKE BESKEDER I DENNE KANAL\n\nDenne kanal bruges til at fange spambotter. Beskeder sendt her medfører {{action:text}}.",
        "dm_intro": "## Honeypot Udløst\n\nDu er blevet **{{action:text}}** fra {{guild:name}} for at sende en besked i [honeypot]({{message:link}})-kanalen.",
        "dm_footer": "-# Dette er en automatisk besked. Svar overvåges ikke.",
        "dm_owner": "-# Dette er et eksempel: som ejer kan du ikke blive {{action:text}}.",
    },

    "de": {
        "ban_action_full": "ein sofortiger Bann",
        "ban_action_short": "Bannt",
        "banned_action_short": "Gebannt",
        "softban_action_full": "ein Kick",
        "softban_action_short": "Kickt",
        "softbanned_action_short": "Gekickt",
        "disabled_action_full": "keine Aktion (Honeypot ist deaktiviert)",
        "disabled_action_short": "Löst aus",
        "warning_message": "## KEINE NACHRICHTEN IN DIESEM KANAL SENDEN\n\nDieser Kanal wird verwendet, um Spam-Bots zu fangen. Nachrichten hier führen zu {{action:text}}.",
        "dm_intro": "## Honeypot Ausgelöst\n\nDu wurdest **{{action:text}}** aus {{guild:name}} für das Senden einer Nachricht im [Honeypot]({{message:link}})-Kanal.",
        "dm_footer": "-# Dies ist eine automatische Nachricht. Antworten werden nicht überwacht.",
        "dm_owner": "-# Dies ist eine Beispielnachricht: Als Besitzer kannst du nicht {{action:text}} werden.",
    },

    "es": {
        "ban_action_full": "un baneo inmediato",
        "ban_action_short": "Banea",
        "banned_action_short": "Baneado",
        "softban_action_full": "una expulsión",
        "softban_action_short": "Expulsa",
        "softbanned_action_short": "Expulsado",
        "disabled_action_full": "sin acción (honeypot desactivado)",
        "disabled_action_short": "Activa",
        "warning_message": "## NO ENVÍES MENSAJES EN ESTE CANAL\n\nEste canal se usa para atrapar bots de spam. Cualquier mensaje enviado aquí resultará en {{action:text}}.",
        "dm_intro": "## Honeypot Activado\n\nHas sido **{{action:text}}** de {{guild:name}} por enviar un mensaje en el canal de [honeypot]({{message:link}}).",
        "dm_footer": "-# Este es un mensaje automático. Las respuestas no se revisan.",
        "dm_owner": "-# Este es un mensaje de ejemplo: como propietario no puedes ser {{action:text}}.",
    },

    "fr": {
        "ban_action_full": "une exclusion immédiate",
        "ban_action_short": "Bannit",
        "banned_action_short": "Banni",
        "softban_action_full": "une exclusion temporaire",
        "softban_action_short": "Expulse",
        "softbanned_action_short": "Expulsé",
        "disabled_action_full": "aucune action (honeypot désactivé)",
        "disabled_action_short": "Déclenche",
        "warning_message": "## NE PAS ENVOYER DE MESSAGES DANS CE SALON\n\nCe salon est utilisé pour piéger les bots de spam. Tout message envoyé ici entraînera {{action:text}}.",
        "dm_intro": "## Honeypot Déclenché\n\nVous avez été **{{action:text}}** de {{guild:name}} pour avoir envoyé un message dans le salon [honeypot]({{message:link}}).",
        "dm_footer": "-# Ceci est un message automatique. Les réponses ne sont pas surveillées.",
        "dm_owner": "-# Ceci est un message d’exemple : en tant que propriétaire, vous ne pouvez pas être {{action:text}}.",
    },

    "it": {
        "ban_action_full": "un ban immediato",
        "ban_action_short": "Banna",
        "banned_action_short": "Bannato",
        "softban_action_full": "un’espulsione",
        "softban_action_short": "Espelle",
        "softbanned_action_short": "Espulso",
        "disabled_action_full": "nessuna azione (honeypot disabilitato)",
        "disabled_action_short": "Attiva",
        "warning_message": "## NON INVIARE MESSAGGI IN QUESTO CANALE\n\nQuesto canale è usato per individuare bot spam. Qualsiasi messaggio inviato qui comporterà {{action:text}}.",
        "dm_intro": "## Honeypot Attivato\n\nSei stato **{{action:text}}** da {{guild:name}} per aver inviato un messaggio nel canale [honeypot]({{message:link}}).",
        "dm_footer": "-# Questo è un messaggio automatico. Le risposte non sono monitorate.",
        "dm_owner": "-# Questo è un messaggio di esempio: come proprietario non puoi essere {{action:text}}.",
    },

    "nl": {
        "ban_action_full": "een directe ban",
        "ban_action_short": "Bant",
        "banned_action_short": "Geband",
        "softban_action_full": "een verwijdering",
        "softban_action_short": "Kickt",
        "softbanned_action_short": "Gekickt",
        "disabled_action_full": "geen actie (honeypot is uitgeschakeld)",
        "disabled_action_short": "Triggert",
        "warning_message": "## GEEN BERICHTEN IN DIT KANAAL STUREN\n\nDit kanaal wordt gebruikt om spam-bots te vangen. Berichten hier leiden tot {{action:text}}.",
        "dm_intro": "## Honeypot Geactiveerd\n\nJe bent **{{action:text}}** uit {{guild:name}} voor het sturen van een bericht in het [honeypot]({{message:link}})-kanaal.",
        "dm_footer": "-# Dit is een automatisch bericht. Antwoorden worden niet gelezen.",
        "dm_owner": "-# Dit is een voorbeeldbericht: als eigenaar kun je niet {{action:text}} worden.",
    },

    "pl": {
        "ban_action_full": "natychmiastowy ban",
        "ban_action_short": "Banuje",
        "banned_action_short": "Zbanowany",
        "softban_action_full": "wyrzucenie",
        "softban_action_short": "Wyrzuca",
        "softbanned_action_short": "Wyrzucony",
        "disabled_action_full": "brak akcji (honeypot wyłączony)",
        "disabled_action_short": "Wyzwala",
        "warning_message": "## NIE WYSYŁAJ WIADOMOŚCI NA TEN KANAŁ\n\nTen kanał służy do łapania botów spamujących. Wysłanie wiadomości spowoduje {{action:text}}.",
        "dm_intro": "## Honeypot Aktywny\n\nZostałeś **{{action:text}}** z {{guild:name}} za wysłanie wiadomości na kanale [honeypot]({{message:link}}).",
        "dm_footer": "-# To jest wiadomość automatyczna. Odpowiedzi nie są monitorowane.",
        "dm_owner": "-# To wiadomość przykładowa: jako właściciel nie możesz zostać {{action:text}}.",
    },

    "pt-BR": {
        "ban_action_full": "um banimento imediato",
        "ban_action_short": "Bane",
        "banned_action_short": "Banido",
        "softban_action_full": "uma expulsão",
        "softban_action_short": "Expulsa",
        "softbanned_action_short": "Expulso",
        "disabled_action_full": "nenhuma ação (honeypot desativado)",
        "disabled_action_short": "Aciona",
        "warning_message": "## NÃO ENVIE MENSAGENS NESTE CANAL\n\nEste canal é usado para capturar bots de spam. Qualquer mensagem enviada aqui resultará em {{action:text}}.",
        "dm_intro": "## Honeypot Ativado\n\nVocê foi **{{action:text}}** de {{guild:name}} por enviar uma mensagem no canal [honeypot]({{message:link}}).",
        "dm_footer": "-# Esta é uma mensagem automática. As respostas não são monitoradas.",
        "dm_owner": "-# Esta é uma mensagem de exemplo: como proprietário você não pode ser {{action:text}}.",
    },

    "sv-SE": {
        "ban_action_full": "en omedelbar avstängning",
        "ban_action_short": "Stänger av",
        "banned_action_short": "Avstängd",
        "softban_action_full": "en tillfällig utspark",
        "softban_action_short": "Kastar ut",
        "softbanned_action_short": "Utkastad",
        "disabled_action_full": "ingen åtgärd (honeypot är avstängd)",
        "disabled_action_short": "Utlöser",
        "warning_message": "## SKICKA INTE MEDDELANDEN I DENNA KANAL\n\nDenna kanal används för att fånga spamrobotar. Meddelanden här leder till {{action:text}}.",
        "dm_intro": "## Honeypot Utlöst\n\nDu har blivit **{{action:text}}** från {{guild:name}} för att du skickade ett meddelande i [honeypot]({{message:link}})-kanalen.",
        "dm_footer": "-# Detta är ett automatiskt meddelande. Svar övervakas inte.",
        "dm_owner": "-# Detta är ett exempel: som ägare kan du inte bli {{action:text}}.",
    },

    "tr": {
        "ban_action_full": "anında yasaklama",
        "ban_action_short": "Yasaklar",
        "banned_action_short": "Yasaklandı",
        "softban_action_full": "geçici atma",
        "softban_action_short": "Atar",
        "softbanned_action_short": "Atıldı",
        "disabled_action_full": "işlem yok (honeypot devre dışı)",
        "disabled_action_short": "Tetikler",
        "warning_message": "## BU KANALDA MESAJ GÖNDERMEYİN\n\nBu kanal spam botlarını yakalamak için kullanılır. Buraya gönderilen mesajlar {{action:text}} ile sonuçlanır.",
        "dm_intro": "## Honeypot Tetiklendi\n\n[honeypot]({{message:link}}) kanalında mesaj gönderdiğiniz için {{guild:name}} sunucusundan **{{action:text}}** oldunuz.",
        "dm_footer": "-# Bu otomatik bir mesajdır. Yanıtlar izlenmez.",
        "dm_owner": "-# Bu bir örnek mesajdır: sahip olarak {{action:text}} olamazsınız.",
    },

    "ru": {
        "ban_action_full": "немедленный бан",
        "ban_action_short": "Банит",
        "banned_action_short": "Забанен",
        "softban_action_full": "выкидывание",
        "softban_action_short": "Кикает",
        "softbanned_action_short": "Кикнут",
        "disabled_action_full": "нет действий (honeypot отключён)",
        "disabled_action_short": "Срабатывает",
        "warning_message": "## НЕ ОТПРАВЛЯЙТЕ СООБЩЕНИЯ В ЭТОТ КАНАЛ\n\nЭтот канал используется для поимки спам-ботов. Любое сообщение здесь приведет к {{action:text}}.",
        "dm_intro": "## Honeypot Сработал\n\nВы были **{{action:text}}** с сервера {{guild:name}} за отправку сообщения в канале [honeypot]({{message:link}}).",
        "dm_footer": "-# Это автоматическое сообщение. Ответы не отслеживаются.",
        "dm_owner": "-# Это пример сообщения: как владелец вы не можете быть {{action:text}}.",
    },

    "uk": {
        "ban_action_full": "миттєвий бан",
        "ban_action_short": "Банить",
        "banned_action_short": "Забанено",
        "softban_action_full": "вигнання",
        "softban_action_short": "Виганяє",
        "softbanned_action_short": "Вигнано",
        "disabled_action_full": "без дій (honeypot вимкнено)",
        "disabled_action_short": "Спрацьовує",
        "warning_message": "## НЕ НАДСИЛАЙТЕ ПОВІДОМЛЕННЯ В ЦЕЙ КАНАЛ\n\nЦей канал використовується для виявлення спам-ботів. Будь-яке повідомлення тут призведе до {{action:text}}.",
        "dm_intro": "## Honeypot Спрацював\n\nВас **{{action:text}}** із {{guild:name}} за надсилання повідомлення в каналі [honeypot]({{message:link}}).",
        "dm_footer": "-# Це автоматичне повідомлення. Відповіді не відстежуються.",
        "dm_owner": "-# Це приклад повідомлення: як власник ви не можете бути {{action:text}}.",
    },

    "ja": {
        "ban_action_full": "即時のBAN",
        "ban_action_short": "BANする",
        "banned_action_short": "BAN済み",
        "softban_action_full": "一時的なキック",
        "softban_action_short": "キック",
        "softbanned_action_short": "キック済み",
        "disabled_action_full": "処理なし（ハニーポットは無効）",
        "disabled_action_short": "トリガー",
        "warning_message": "## このチャンネルでメッセージを送信しないでください\n\nこのチャンネルはスパムボットを捕まえるために使用されます。ここで送信されたメッセージは{{action:text}}となります。",
        "dm_intro": "## ハニーポットが発動しました\n\n[honeypot]({{message:link}})チャンネルでメッセージを送信したため、{{guild:name}}から**{{action:text}}**されました。",
        "dm_footer": "-# これは自動メッセージです。返信は確認されません。",
        "dm_owner": "-# これは例のメッセージです。所有者として{{action:text}}されることはありません。",
    },
}


def _candidates(*tags: Optional[str]) -> Iterator[str]:
    for tag in tags:
        if tag:
            yield tag
            yield tag.split("-")[0].lower()


def resolve_strings(locale: Optional[str], fallback: Optional[str] = None) -> LocaleStrings:
    """Return the full string record for ``locale``.

    Lookup order: the tag, its base language, the fallback locale (the
    configured ``bot.default_locale`` unless given) and its base language,
    then ``en``. ``pt-BR`` matches exactly and ``en-GB`` resolves to ``en``.
    """
    default = STRINGS[DEFAULT_LOCALE]
    for candidate in _candidates(locale, fallback or app_config.default_locale):
        record = STRINGS.get(candidate)
        if record is not None:
            return {**default, **record}
    return dict(default)
