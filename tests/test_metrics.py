from prometheus_client import REGISTRY


def sample(name, **labels):
    return REGISTRY.get_sample_value(name, labels) or 0.0


def test_completion_counter(service, store, project):
    before = sample("forest_task_completions_total", difficulty="2")
    node = store.load_hta("guitar").frontier_nodes[0]
    service.complete_task(project, node.id, "done", difficulty_rating=2)
    assert sample("forest_task_completions_total", difficulty="2") == before + 1


def test_schedule_timer(service, project):
    before = sample("forest_schedule_synthesis_seconds_count")
    service.synthesize_schedule(project, "2025-11-03")
    assert sample("forest_schedule_synthesis_seconds_count") == before + 1


def test_next_task_outcome(service, project):
    before = sample("forest_next_task_total", outcome="selected")
    service.select_next_task(project)
    assert sample("forest_next_task_total", outcome="selected") == before + 1
