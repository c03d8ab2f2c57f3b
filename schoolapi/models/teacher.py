from schoolapi.models.base import TableModel


class Teacher(TableModel):
    table = "teachers"
    label = "Teacher"
    updated_column = None
    default_order = "name"
    fields = ("name", "email", "phone", "qualification")
