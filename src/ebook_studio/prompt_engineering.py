"""Prompt builders and deterministic lookup tables for ebook generation."""

from typing import Dict, List, Optional

from ebook_studio.models import BookStyle, MockupType


TREND_FOCUS: Dict[BookStyle, str] = {
    BookStyle.MODERN_MAG: "trending lifestyle and wellness topics with high visual appeal",
    BookStyle.RECIPE_BOOK: "viral food trends and popular cuisines (keto, vegan, etc.)",
    BookStyle.MINIMALIST: "productivity hacks and minimalist living guides",
    BookStyle.VIBRANT: "pop culture and social media trending topics",
}

OUTLINE_STRUCTURE: Dict[BookStyle, str] = {
    BookStyle.MODERN_MAG: "magazine-style layout with 8-10 short visual sections",
    BookStyle.RECIPE_BOOK: "6-8 recipes with step-by-step instructions and ingredient lists",
    BookStyle.MINIMALIST: "10-12 minimalist tips with clean, simple structure",
    BookStyle.VIBRANT: "8-10 colorful, engaging chapters with bold visuals",
}

WRITING_VOICE: Dict[BookStyle, str] = {
    BookStyle.MODERN_MAG: (
        "Magazine style with BOLD headlines, punchy paragraphs, dramatic callouts. Use energy "
        "words like 'stunning', 'revolutionary', 'game-changing'. Add quotes and expert tips."
    ),
    BookStyle.RECIPE_BOOK: (
        "Complete recipe with vivid descriptions. Paint sensory details: 'crispy golden edges', "
        "'silky smooth texture', 'aromatic spices'. Include pro chef tips and flavor variations."
    ),
    BookStyle.MINIMALIST: (
        "Clean, powerful prose. Short sentences. Bold verbs. No fluff. Each word earns its place. "
        "Actionable, transformative advice."
    ),
    BookStyle.VIBRANT: (
        "HIGH ENERGY writing! Use enthusiasm, exclamation points, power words. Social media-ready "
        "hooks. Make readers EXCITED to try this!"
    ),
}

# Indexed by chapter ordinal modulo length so repeated runs pick the same look.
IMAGE_STYLE_VARIATIONS: List[str] = [
    "overhead flat lay shot with natural morning light",
    "close-up macro photography with shallow depth of field",
    "45-degree angle hero shot with styled background",
    "rustic wooden table setting with soft shadows",
    "bright minimalist composition with negative space",
    "cozy lifestyle shot with warm ambient lighting",
    "editorial food photography with dramatic lighting",
    "fresh ingredients scattered artfully around the dish",
]

IMAGE_COLOR_PALETTES: List[str] = [
    "vibrant greens and warm earth tones",
    "bright rainbow colors with white accents",
    "rich jewel tones with gold highlights",
    "soft pastels with natural wood textures",
    "deep burgundy and forest green palette",
    "sunny yellow and orange gradient",
    "cool blues and purples with silver touches",
    "warm amber and cream tones",
]

STOCK_PHOTO_IDS: List[str] = [
    "1640777", "1640774", "1640772", "1640770", "1640768",
    "1092730", "1095550", "1082343", "1640764", "1092883",
    "1600711", "1640766", "1640767", "1640769", "1640773",
]

STOCK_PHOTO_URL = (
    "https://images.pexels.com/photos/{id}/pexels-photo-{id}.jpeg"
    "?auto=compress&cs=tinysrgb&w=1200&h=800&fit=crop"
)

LANGUAGE_NAMES: Dict[str, str] = {
    "en": "English",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "it": "Italian",
    "pt": "Portuguese",
}

MARKETING_MOCKUP_PROMPTS: Dict[MockupType, str] = {
    MockupType.TABLET_OFFICE: (
        "Create a professional product photography scene: A modern sleek tablet device placed on a "
        "clean minimalist office desk at a slight angle. The tablet screen must display the EXACT "
        "ebook cover image provided. Scene includes: white ceramic coffee cup with saucer on the "
        "right, a spiral notebook with a luxury pen on the left, and soft natural window lighting "
        "creating gentle shadows on the desk surface. Background is a bright, airy office with "
        "blurred windows showing daylight. The tablet bezel is thin and modern. Photorealistic, "
        "commercial product photography, shallow depth of field focusing on the tablet screen, warm "
        "natural tones, elegant professional composition, 4K quality, lifestyle marketing shot."
    ),
    MockupType.BOOK_3D: (
        "Create an ultra-realistic 3D physical book mockup: A premium hardcover book standing "
        "upright at a 20-degree angle showing the front cover prominently. The book cover must "
        "display the EXACT cover image provided - preserve all text, colors, and design elements "
        "perfectly. The book has a glossy laminated finish with realistic paper texture visible on "
        "the page edges. Placed on a pure white reflective surface creating a subtle mirror "
        "reflection below. Studio lighting with soft shadows from upper right. Clean white "
        "background. Premium publishing quality, photorealistic 3D rendering, commercial product "
        "shot for online bookstore, high resolution."
    ),
    MockupType.MULTI_DEVICE: (
        "Create a professional multi-device responsive mockup scene: A desktop computer (center, "
        "largest device), a tablet (left, medium size) and a phone (right, smallest) all displaying "
        "the EXACT same ebook cover image provided on their screens. Devices are arranged on a clean "
        "light wooden desk in a modern minimalist office at slight angles. Tasteful props: a small "
        "potted succulent, a wireless keyboard and a white ceramic coffee mug. Soft natural window "
        "lighting, all device screens in sharp focus showing the cover clearly, commercial "
        "technology photography, warm neutral tones."
    ),
}

GRAMMAR_SYSTEM_PROMPT = (
    "You are a grammar correction assistant. You MUST preserve ALL HTML tags exactly as provided. "
    "Only correct the text content between tags. Never remove, alter, or add HTML tags."
)

HUMANIZE_SYSTEM_PROMPT = (
    "You are a text humanization assistant. You MUST preserve ALL HTML structure exactly. "
    "Only modify the text content to sound more natural and human-like."
)

FALLBACK_TOPIC = "Trending Guide 2025"


def _coerce_style(style) -> BookStyle:
    try:
        return BookStyle(style)
    except ValueError:
        return BookStyle.MODERN_MAG


def language_name(code: str) -> str:
    return LANGUAGE_NAMES.get(code, code)


def build_trend_prompt(style) -> str:
    focus = TREND_FOCUS[_coerce_style(style)]
    return (
        f"You are a market analyst. Based on current trends, suggest ONE high-commercial-potential "
        f"topic for a {focus} ebook.\n\n"
        "Requirements:\n"
        "- Short, punchy titles (30-50 pages max)\n"
        "- High social media shareability\n"
        "- Visual-heavy potential\n"
        "- Broad appeal\n\n"
        'Return ONLY the topic title (e.g., "The Viral Keto Breakfast Bowl Guide 2025")'
    )


def build_outline_prompt(title: str, style, language: str = "en") -> str:
    structure = OUTLINE_STRUCTURE[_coerce_style(style)]
    return (
        f'Create an outline for a commercial ebook titled "{title}".\n\n'
        f"Style: {structure}\n"
        f"Language: {language}\n"
        "Target: 35-50 pages total\n\n"
        "Return a JSON object with a \"chapters\" array using this structure:\n"
        "{\n"
        '  "chapters": [\n'
        "    {\n"
        '      "title": "Chapter title",\n'
        '      "description": "2-sentence description",\n'
        '      "keywords": ["keyword1", "keyword2", "keyword3"]\n'
        "    }\n"
        "  ]\n"
        "}\n\n"
        "Keep it commercial, punchy, and visual-friendly."
    )


def build_chapter_prompt(title: str, description: str, style, language: str = "en") -> str:
    # Unknown styles write like a recipe book.
    try:
        voice = WRITING_VOICE[BookStyle(style)]
    except ValueError:
        voice = WRITING_VOICE[BookStyle.RECIPE_BOOK]

    return f"""Write DYNAMIC, ENGAGING, PERFECTLY FORMATTED content for this chapter - make it magazine-quality!

**Chapter:** {title}
**Description:** {description}
**Style:** {voice}
**Language:** {language}
**Length:** 600-900 words

**MANDATORY FORMATTING RULES:**
1. EVERY PARAGRAPH must use <p> tags (no other tags for body text)
2. Use <strong> for AT LEAST 8-12 key words, measurements, concepts
3. Use <em> for emphasis and sensory descriptions
4. MUST include at least ONE <ul> list with 4-8 items
5. MUST include at least ONE <blockquote> with a pro tip
6. Use <h3> for 2-3 sub-sections
7. Make text DYNAMIC with varied sentence lengths
8. Add personality - conversational yet professional

Your content must be PURE HTML - no markdown, no code blocks, no explanations.

**Image Prompt:**
Create a detailed, specific prompt for commercial photography of this chapter:
- Exact angle (overhead, 45 degrees, close-up macro)
- Lighting (natural window light, studio, dramatic, soft)
- Color palette
- Specific props and styling
- The exact dish or scene

Return ONLY this JSON (no markdown, no code blocks):
{{
  "content": "YOUR FORMATTED HTML HERE",
  "imagePrompt": "DETAILED PHOTOGRAPHY PROMPT HERE"
}}"""


def build_grammar_prompt(html: str, language: str = "en") -> str:
    return (
        "Fix grammar, spelling, and punctuation errors in this HTML content.\n\n"
        "CRITICAL RULES:\n"
        "1. Preserve ALL HTML tags EXACTLY (<p>, <strong>, <em>, <ul>, <li>, <blockquote>, <h3>, etc.)\n"
        "2. Only fix text content between tags\n"
        "3. Do NOT convert to markdown\n"
        "4. Do NOT remove or alter any HTML structure\n"
        "5. Return ONLY the corrected HTML with NO additional text\n\n"
        f"Language: {language}\n\n"
        f"HTML Content:\n{html}"
    )


def build_humanize_prompt(html: str, language: str = "en") -> str:
    return (
        "Make this AI-generated text sound MORE HUMAN and NATURAL while preserving ALL HTML structure.\n\n"
        "HTML PRESERVATION RULES:\n"
        "1. PRESERVE ALL HTML tags EXACTLY: <p>, <strong>, <em>, <ul>, <li>, <blockquote>, <h3>, etc.\n"
        "2. Do NOT convert to markdown\n"
        "3. Do NOT remove or alter HTML structure\n"
        "4. Only modify TEXT CONTENT between tags\n\n"
        "Humanization rules:\n"
        "1. Vary sentence structure (mix short and long)\n"
        "2. Add contractions where natural (\"it's\", \"you'll\", \"we're\")\n"
        "3. Use conversational transitions (\"however\", \"meanwhile\", \"in fact\")\n"
        "4. Remove overly formal AI phrases (\"it is important to note\", \"furthermore\")\n"
        "5. Keep enthusiasm but make it authentic\n"
        "6. Add subtle personality without being cheesy\n\n"
        f"Language: {language}\n\n"
        f"HTML Content:\n{html}\n\n"
        "Return ONLY the humanized HTML with ALL tags preserved. No markdown, no explanations."
    )


def build_translation_prompt(html: str, target_language: str) -> str:
    return (
        f"Translate the following content to {language_name(target_language)}. Maintain HTML "
        "formatting and structure. Keep the tone commercial and engaging.\n\n"
        f"Content:\n{html}"
    )


def build_image_prompt(prompt: str, chapter_index: int = 0) -> str:
    """Decorate a chapter image prompt with the variation for its ordinal."""
    style = IMAGE_STYLE_VARIATIONS[chapter_index % len(IMAGE_STYLE_VARIATIONS)]
    palette = IMAGE_COLOR_PALETTES[chapter_index % len(IMAGE_COLOR_PALETTES)]
    return (
        f"Professional commercial food photography: {prompt}. {style}, {palette}. "
        "Magazine-quality, studio lighting, high resolution, appetizing presentation, editorial "
        "style. Sharp focus, rich textures, vivid details."
    )


def build_mockup_prompt(book_title: str, mockup_type: MockupType) -> str:
    return (
        f"{MARKETING_MOCKUP_PROMPTS[mockup_type]}\n\n"
        "IMPORTANT: Use the provided cover image EXACTLY as shown - this is the actual ebook cover "
        f'for "{book_title}". Display it on the device screen(s) in the mockup scene. Preserve all '
        "text, colors, and design elements from the cover perfectly. Do not modify or recreate the "
        "cover design."
    )


def stock_image_url(chapter_index: int) -> str:
    """Return the stock photo used when image generation for an ordinal fails."""
    photo_id = STOCK_PHOTO_IDS[chapter_index % len(STOCK_PHOTO_IDS)]
    return STOCK_PHOTO_URL.format(id=photo_id)


def fallback_topic(answer: Optional[str]) -> str:
    topic = (answer or "").strip().strip('"').strip()
    return topic or FALLBACK_TOPIC
