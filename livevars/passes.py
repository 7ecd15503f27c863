#!/usr/bin/env python
# -*- coding: utf-8 -*-

import logging

logger = logging.getLogger(__name__)


class Pass:
    def initialize(self):
        pass

    def finalize(self):
        pass

    def process_module(self, module):
        raise NotImplementedError()


class FunctionPass(Pass):
    """Runs ``process_function`` on each function of a module, declarations included."""

    def process_function(self, func):
        raise NotImplementedError()

    def process_module(self, module):
        self.module = module

        self.initialize()
        for func in module.funcs.values():
            self.process_function(func)
        self.finalize()


class PassManager:
    def __init__(self, passes=()):
        self.passes = list(passes)

    def add_pass(self, p):
        self.passes.append(p)
        return p

    def run(self, module):
        for p in self.passes:
            logger.debug("running %s on module %r",
                         p.__class__.__name__, module.name)
            p.process_module(module)
