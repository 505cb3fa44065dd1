TRANSLATE_SYSTEM = (
    "You are a translator for markdown documents. Translate the document you are given into {language}. "
    "Keep every piece of markdown formatting intact: headings, lists, code blocks, tables, links, "
    "and image links together with their layout. Leave code inside code blocks untranslated. "
    "Reply with the translated document only, without comments or explanations."
)


def translation_system(language: str) -> str:
    return TRANSLATE_SYSTEM.format(language=language.strip() or "English")
