import doc_bot.models as models
from doc_bot.models import FileOutcome, MemberDescriptor, RunRecord
from doc_bot.models.member_models import MemberDescriptor as CoreMemberDescriptor
from doc_bot.models.record_models import FileOutcome as CoreFileOutcome
from doc_bot.models.record_models import RunRecord as CoreRunRecord


def test_public_model_exports_remain_compatible():
    assert MemberDescriptor is CoreMemberDescriptor
    assert RunRecord is CoreRunRecord
    assert FileOutcome is CoreFileOutcome
    assert isinstance(RunRecord(model_name="m"), RunRecord)


def test_all_names_resolve():
    for name in models.__all__:
        assert hasattr(models, name), name
