from __future__ import annotations

import pytest
from pydantic import ValidationError

from resource_registry.schemas.resource import ResourceCreate, ResourceRead, ResourceUpdate


@pytest.mark.parametrize("payload", [{"title": "T" * 51}, {"alias": "a" * 51}, {"step": -1}])
@pytest.mark.parametrize("model", [ResourceCreate, ResourceUpdate])
def test_input_models_enforce_column_limits(model, payload):
    with pytest.raises(ValidationError):
        model(**payload)


def test_read_model_accepts_stored_values_outside_input_limits():
    row = ResourceRead.model_validate({"Id": 1, "Title": "T" * 80, "Step": -1, "AppName": None})

    assert (row.id, len(row.title), row.step, row.app_name) == (1, 80, -1, None)
