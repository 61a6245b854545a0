from .crud_question import CRUDQuestion, crud_question
from .crud_blueprint import CRUDBlueprint, crud_blueprint
from .crud_paper import CRUDPaper, crud_paper
__all__ = ["CRUDQuestion", "CRUDBlueprint", "CRUDPaper", "crud_question", "crud_blueprint", "crud_paper"]
