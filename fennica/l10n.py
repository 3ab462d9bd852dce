from __future__ import annotations

import datetime as dt

DEFAULT_LANGUAGE = "en"

STRINGS = {
    "ru": {
        "lang-en": "English version",
        "Back to Top": "Наверх",
        "Previous": "Назад",
        "Next": "Далее",
        "Home": "Домой",
        "Published on": "Опубликовано",
        "Continue reading": "Читать дальше",
        "Map": "Карта",
        "Places": "Места",
        "Blog": "Блог",
        "Articles": "Статьи",
        "Contents": "Содержание",
        "About Website": "О сайте",
        "Read more": "Подробнее",
        "Address": "Адрес",
        "Season": "Сезон",
        "Access": "Как добраться",
        "Links": "Ссылки",
        "Up to date as of": "Актуально на",
        "Zoom in to see less notable places": "Приблизьте карту, чтобы увидеть больше мест",
    },
    "en": {
        "lang-ru": "Русская версия",
    },
    "fi": {
        "Previous": "Edellinen",
        "Next": "Seuraava",
        "Home": "Etusivu",
        "Published on": "Julkaistu",
        "Continue reading": "Jatka lukemista",
        "Map": "Kartta",
        "Places": "Paikat",
        "Blog": "Blogi",
        "Articles": "Artikkelit",
        "Contents": "Sisältö",
        "About Website": "Sivustosta",
        "Read more": "Lue lisää",
        "Address": "Osoite",
        "Links": "Linkit",
    },
}

MONTHS = {
    "en": ["January", "February", "March", "April", "May", "June", "July", "August", "September", "October",
           "November", "December"],
    "ru": ["января", "февраля", "марта", "апреля", "мая", "июня", "июля", "августа", "сентября", "октября",
           "ноября", "декабря"],
    "fi": ["tammikuuta", "helmikuuta", "maaliskuuta", "huhtikuuta", "toukokuuta", "kesäkuuta", "heinäkuuta",
           "elokuuta", "syyskuuta", "lokakuuta", "marraskuuta", "joulukuuta"],
}


def _(text: str, lang: str = DEFAULT_LANGUAGE) -> str:
    return STRINGS.get(lang, {}).get(text, text)


def format_date(value: dt.date, lang: str) -> str:
    months = MONTHS.get(lang, MONTHS[DEFAULT_LANGUAGE])
    month = months[value.month - 1]
    if lang == "ru":
        return f"{value.day} {month} {value.year} г."
    if lang == "fi":
        return f"{value.day}. {month} {value.year}"
    return f"{month} {value.day}, {value.year}"
