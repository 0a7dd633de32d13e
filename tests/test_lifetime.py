import unittest

from injectory import Container, Lifetime


class IService: ...


class Service(IService): ...


class TestLifetimeControl(unittest.TestCase):
    cont: Container

    def setUp(self):
        self.cont = Container()

    def test_get_per_call_returns_new_instances(self):
        self.cont.register_implementation(IService, Service, Lifetime.PER_CALL)
        a1 = self.cont.get(IService)
        a2 = self.cont.get(IService)

        assert isinstance(a1, Service)
        assert isinstance(a2, Service)
        assert a2 is not a1, "PER_CALL should return new instances"

    def test_per_call_is_the_default_lifetime(self):
        self.cont.register_implementation(IService, Service)

        assert self.cont.get(IService) is not self.cont.get(IService)
        assert not self.cont.contains_instance(IService)

    def test_get_per_container_returns_same_instance(self):
        self.cont.register_implementation(IService, Service, Lifetime.PER_CONTAINER)
        a1 = self.cont.get(IService)
        a2 = self.cont.get(IService)

        assert a2 is a1, "PER_CONTAINER should return the cached instance"
        assert a1 in self.cont.all_instances

    def test_per_container_instance_is_cached_only_after_first_get(self):
        self.cont.register_implementation(IService, Service, Lifetime.PER_CONTAINER)

        assert not self.cont.contains_instance(IService)
        self.cont.get(IService)
        assert self.cont.contains_instance(IService)

    def test_register_instance_is_always_per_container(self):
        inst = Service()
        self.cont.register_instance(IService, inst)

        assert self.cont.contains_instance(IService)
        assert self.cont.get(IService) is inst
        assert self.cont.get(IService) is inst

    def test_ad_hoc_values_do_not_bypass_cache(self):
        self.cont.register_implementation(IService, Service, Lifetime.PER_CONTAINER)
        first = self.cont.get(IService)

        assert self.cont.get(IService, object()) is first
