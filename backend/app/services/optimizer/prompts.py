"""优化器 prompt：title / description / category 各一个模板"""

from __future__ import annotations
from decimal import Decimal
from typing import List, Optional


DESCRIPTION_STYLES = ("marketing", "technical", "casual")
DESCRIPTION_LENGTHS = ("short", "medium", "long")


def build_title_prompt(
    *,
    title: str,
    description: str,
    brand: str,
    category: str,
    keywords: List[str],
    max_length: int,
) -> str:
    keyword_text = ", ".join(keywords)
    return f"""You are a professional e-commerce SEO expert. Transform this product title into a compelling, searchable title that drives clicks and sales.

CURRENT PRODUCT:
- Original Title: "{title}"
- Product Description: "{description}"
- Brand: "{brand}"
- Category: "{category}"
- Keywords to include: "{keyword_text}"

TASK: Create a new title that is:
1. MORE DESCRIPTIVE than the original
2. Includes the brand name naturally
3. Contains relevant keywords customers search for
4. Under {max_length} characters
5. Compelling and click-worthy

EXAMPLES OF GOOD TRANSFORMATIONS:
Original: "Summer Necklace"
Better: "Gold Boho Necklace with Turquoise Pendant - Elegant Summer Jewelry"

Original: "Leather Bag"
Better: "Premium Leather Crossbody Bag - Stylish Women's Handbag"

Return ONLY the optimized title:"""


def build_description_prompt(
    *,
    title: str,
    description: str,
    brand: str,
    category: str,
    price: Optional[Decimal],
    style: str,
    length: str,
    custom_instructions: str = "",
) -> str:
    price_text = f"{(price or Decimal('0')):.2f}"
    prompt = f"""You are an expert e-commerce copywriter who writes product descriptions that convert.

PRODUCT INFORMATION:
- Product Name: "{title}"
- Original Description: "{description}"
- Brand: "{brand}"
- Category: "{category}"
- Price: ${price_text}
- Style: {style}
- Length: {length}

COPYWRITING REQUIREMENTS:
1. Write in {style} style (marketing/technical/casual)
2. Make it {length} length (short/medium/long)
3. Focus on customer benefits, not just features
4. Include a clear call-to-action
5. Keep it scannable with short paragraphs or bullet points

STYLE GUIDELINES:
- Marketing: benefits, emotional appeal, social proof
- Technical: detailed specifications, features, performance
- Casual: friendly, conversational, approachable"""

    if custom_instructions.strip():
        prompt += f"\n\nCUSTOM INSTRUCTIONS (follow these):\n{custom_instructions.strip()}"

    prompt += "\n\nReturn ONLY the enhanced description:"
    return prompt


def build_category_prompt(*, title: str, description: str, brand: str, current_category: str) -> str:
    return f"""You are an expert e-commerce product categorization specialist. Analyze this product and suggest the most appropriate Google Shopping-style hierarchical categories.

Product: "{title}"
Description: "{description}"
Brand: "{brand}"
Current Category: "{current_category}"

Provide exactly 3 category suggestions in this JSON format:
[
  {{"category": "Apparel & Accessories > Clothing > Outerwear > Jackets & Coats", "confidence": 95, "reason": "Product is clearly outerwear"}},
  {{"category": "Sporting Goods > Outdoor Recreation > Outdoor Clothing", "confidence": 85, "reason": "Suitable for outdoor activities"}},
  {{"category": "Apparel & Accessories > Clothing > Activewear", "confidence": 75, "reason": "Can be used for sports"}}
]

Requirements:
- Use hierarchical categories with " > " separators
- Confidence as whole numbers 0-100
- Categories should follow Google Merchant Center conventions

Return ONLY the JSON array, no other text:"""
