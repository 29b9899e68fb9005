"""结构化生成：题目、讲解、学习计划、模拟考试蓝图，以及模型输出的 JSON 修复。"""
