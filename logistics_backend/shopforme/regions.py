# shopforme/regions.py

"""
Origin regions (where agents buy and ship from) and product categories.
"""

REGION_EUROPE = "europe"
REGION_DUBAI = "dubai"
REGION_CHINA = "china"
REGION_INDIA = "india"
REGION_USA = "usa"
REGION_UK = "uk"

REGION_CHOICES = [
    (REGION_EUROPE, "Europe"),
    (REGION_DUBAI, "Dubai"),
    (REGION_CHINA, "China"),
    (REGION_INDIA, "India"),
    (REGION_USA, "USA"),
    (REGION_UK, "United Kingdom"),
]

CATEGORY_GENERAL = "general"
CATEGORY_HAZARDOUS = "hazardous"
CATEGORY_COSMETICS = "cosmetics"
CATEGORY_ELECTRONICS = "electronics"
CATEGORY_SPARE_PARTS = "spare_parts"

CATEGORY_CHOICES = [
    (CATEGORY_GENERAL, "General Goods"),
    (CATEGORY_HAZARDOUS, "Hazardous Goods"),
    (CATEGORY_COSMETICS, "Cosmetics"),
    (CATEGORY_ELECTRONICS, "Electronics"),
    (CATEGORY_SPARE_PARTS, "Spare Parts"),
]
