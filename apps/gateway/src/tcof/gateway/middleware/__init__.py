"""网关中间件"""
