"""Default category set offered to new users."""

from __future__ import annotations

from spendwise.schemas.category import Category, CategoryTaxonomy

DEFAULT_CATEGORIES = [
    Category(id="food", name="飲食", direction="expense", icon="🍴"),
    Category(id="transport", name="交通", direction="expense", icon="🚗"),
    Category(id="shopping", name="購物", direction="expense", icon="🛍️"),
    Category(id="entertainment", name="娛樂", direction="expense", icon="🎮"),
    Category(id="health", name="醫療", direction="expense", icon="💊"),
    Category(id="housing", name="住房", direction="expense", icon="🏠"),
    Category(id="utility", name="水電瓦斯", direction="expense", icon="💡"),
    Category(id="communication", name="通訊", direction="expense", icon="📱"),
    Category(id="education", name="教育", direction="expense", icon="📚"),
    Category(id="insurance", name="保險", direction="expense", icon="🛡️"),
    Category(id="tax", name="稅金", direction="expense", icon="💸"),
    Category(id="parental", name="孝親", direction="expense", icon="👵"),
    Category(id="children", name="小孩", direction="expense", icon="🧒"),
    Category(id="pet", name="寵物", direction="expense", icon="🐶"),
    Category(id="travel", name="旅遊", direction="expense", icon="✈️"),
    Category(id="social", name="交際", direction="expense", icon="🤝"),
    Category(id="beauty", name="美容", direction="expense", icon="💅"),
    Category(id="sports", name="運動", direction="expense", icon="🏃"),
    Category(id="other", name="其他", direction="expense", icon="🔖"),
    Category(id="salary", name="薪資", direction="income", icon="💰"),
    Category(id="bonus", name="獎金", direction="income", icon="🎁"),
    Category(id="investment", name="投資", direction="income", icon="📈"),
    Category(id="interest", name="利息", direction="income", icon="🏦"),
    Category(id="refund", name="退款", direction="income", icon="↩️"),
    Category(id="other_income", name="其他收入", direction="income", icon="🪙"),
]


def default_taxonomy() -> CategoryTaxonomy:
    return CategoryTaxonomy(DEFAULT_CATEGORIES)
