from craftads.models.user import User
from craftads.models.credit_transaction import CreditTransaction
from craftads.models.credit_package import CreditPackage
from craftads.models.payment import Payment
from craftads.models.template_category import TemplateCategory
from craftads.models.ad_template import AdTemplate, TemplateCategoryRelationship
from craftads.models.generation import Generation
from craftads.models.user_favorite_template import UserFavoriteTemplate
from craftads.models.template_feedback import TemplateFeedback

__all__ = [
    "User", "CreditTransaction", "CreditPackage", "Payment",
    "TemplateCategory", "AdTemplate", "TemplateCategoryRelationship",
    "Generation", "UserFavoriteTemplate", "TemplateFeedback",
]
